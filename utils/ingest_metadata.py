from __future__ import annotations

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from utils.ofac_entities import SanctionedEntity
from utils.time_utils import utc_isoformat, utcnow

META_KEY = "meta.json"


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class SourceTable:
    """One fetched OFAC CSV export and the rows parsed from it.

    `name` is the short table tag used in metadata keys ("sdn", "alt", "add").
    """

    name: str
    url: str
    text: str
    rows: Sequence[dict[str, str]] = field(default_factory=tuple)


@dataclass(frozen=True)
class IngestMetadata:
    fetched_at: str
    lists: tuple[str, ...]
    source: dict[str, str]
    counts: dict[str, int]
    hashes: dict[str, str]

    def as_dict(self) -> dict[str, Any]:
        return {
            "lists": list(self.lists),
            "fetchedAt": self.fetched_at,
            "source": dict(self.source),
            "counts": dict(self.counts),
            "hashes": dict(self.hashes),
        }


def build_ingest_metadata(
    *,
    tables: Sequence[SourceTable],
    entities: Sequence[SanctionedEntity],
    fetched_at: datetime | None = None,
) -> IngestMetadata:
    """Describe one update run.

    Skip counts are derived from the consolidated output: the extractor emits
    one entity per accepted SDN row, and each accepted ALT/ADD row appends
    exactly one alias/address.

    The first table is the primary (entity-producing) table; any table named
    "alt" / "add" is treated as the alias / address table.
    """

    if not tables:
        raise ValueError("at least the primary table is required")

    source: dict[str, str] = {}
    counts: dict[str, int] = {}
    hashes: dict[str, str] = {}

    for t in tables:
        source[f"{t.name}Url"] = t.url
        counts[f"{t.name}Rows"] = len(t.rows)
        hashes[f"{t.name}Sha256"] = sha256_text(t.text)

    counts["entities"] = len(entities)

    merged_by_table = {
        tables[0].name: len(entities),
        "alt": sum(len(e.aka) for e in entities),
        "add": sum(len(e.addresses) for e in entities),
    }
    for t in tables:
        if t.name in merged_by_table:
            counts[f"{t.name}Skipped"] = max(len(t.rows) - merged_by_table[t.name], 0)

    return IngestMetadata(
        fetched_at=utc_isoformat(fetched_at or utcnow()),
        lists=tuple(t.name.upper() for t in tables),
        source=source,
        counts=counts,
        hashes=hashes,
    )
