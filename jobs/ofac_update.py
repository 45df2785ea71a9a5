"""OFAC SDN update job.

One run downloads SDN.CSV (required), ALT.CSV and ADD.CSV (optional), builds
the consolidated entity list and replaces `dataset.json.gz` + `meta.json` in
the blob store in a single transaction.

States: FETCHING -> PARSING -> EXTRACTING -> CONSOLIDATING_ALIASES ->
CONSOLIDATING_ADDRESSES -> ENCODING -> PERSISTED. A failure in any state
raises `IngestAbortedError` and leaves the previously stored blobs in place.

Usage:
    python jobs/ofac_update.py
    python jobs/ofac_update.py --debug-headers
"""

from __future__ import annotations

import argparse
import csv
import json
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

# Allow running this file directly (e.g. `python jobs/ofac_update.py`) by
# ensuring the project root is importable.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

import requests

from logging_utils import get_logger, set_log_level
from support.source_ingest_base import IngestRunResult, SourceIngestBase
from utils.blob_store import BlobStore, BlobWrite, json_bytes
from utils.dataset_codec import DATASET_KEY, encode_dataset
from utils.ingest_metadata import META_KEY, SourceTable, build_ingest_metadata
from utils.ofac_client import (
    ADD_FILE,
    ALT_FILE,
    SDN_FILE,
    OfacApiError,
    export_url,
    fetch_export_text,
)
from utils.ofac_parser import (
    ADD_COLUMNS,
    ALT_COLUMNS,
    SDN_COLUMNS,
    consolidate_addresses,
    consolidate_aliases,
    extract_entities,
    parse_csv,
)
from utils.time_utils import utc_isoformat, utcnow

logger = get_logger(__name__)


class IngestState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    PARSING = "PARSING"
    EXTRACTING = "EXTRACTING"
    CONSOLIDATING_ALIASES = "CONSOLIDATING_ALIASES"
    CONSOLIDATING_ADDRESSES = "CONSOLIDATING_ADDRESSES"
    ENCODING = "ENCODING"
    PERSISTED = "PERSISTED"


class IngestAbortedError(RuntimeError):
    def __init__(self, message: str, *, state: IngestState):
        super().__init__(message)
        self.state = state


@dataclass(frozen=True)
class TableSpec:
    name: str
    file_name: str
    fallback_fieldnames: tuple[str, ...]
    required: bool


TABLES: tuple[TableSpec, ...] = (
    TableSpec("sdn", SDN_FILE, SDN_COLUMNS, required=True),
    TableSpec("alt", ALT_FILE, ALT_COLUMNS, required=False),
    TableSpec("add", ADD_FILE, ADD_COLUMNS, required=False),
)


@dataclass(frozen=True)
class FetchedTable:
    spec: TableSpec
    url: str
    text: str
    ok: bool


class OfacUpdateJob(SourceIngestBase):
    source_name = "ofac"

    def __init__(
        self,
        *,
        store: BlobStore | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        max_attempts: int = 1,
        workers: int = len(TABLES),
        session: requests.Session | None = None,
        now: Callable[[], Any] = utcnow,
    ) -> None:
        super().__init__(store=store)
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.workers = max(1, int(workers))
        self.session = session
        self._now = now
        self.state = IngestState.IDLE

    def _enter(self, state: IngestState) -> None:
        self.state = state
        logger.info("ofac_update state | state=%s", state.value)

    def _fetch_one(self, spec: TableSpec) -> FetchedTable:
        url = export_url(spec.file_name, base_url=self.base_url)
        logger.info("Fetching OFAC export | table=%s url=%s", spec.name, url)
        try:
            text = fetch_export_text(
                spec.file_name,
                base_url=self.base_url,
                session=self.session,
                timeout_seconds=self.timeout_seconds,
                max_attempts=self.max_attempts,
            )
        except OfacApiError as e:
            if spec.required:
                raise IngestAbortedError(
                    f"required table {spec.file_name} could not be fetched: {e}",
                    state=IngestState.FETCHING,
                ) from e
            logger.warning(
                "Optional OFAC export unavailable; continuing without it | table=%s err=%s",
                spec.name,
                e,
            )
            return FetchedTable(spec=spec, url=url, text="", ok=False)
        return FetchedTable(spec=spec, url=url, text=text, ok=True)

    def fetch_tables(self) -> list[FetchedTable]:
        """Fetch all exports concurrently; result order follows `TABLES`."""

        with ThreadPoolExecutor(max_workers=self.workers) as ex:
            futs = [ex.submit(self._fetch_one, spec) for spec in TABLES]
            return [f.result() for f in futs]

    @staticmethod
    def parse_tables(fetched: list[FetchedTable]) -> list[SourceTable]:
        tables: list[SourceTable] = []
        for f in fetched:
            try:
                rows = parse_csv(
                    f.text, fallback_fieldnames=f.spec.fallback_fieldnames
                )
            except csv.Error as e:
                raise IngestAbortedError(
                    f"{f.spec.file_name} could not be parsed: {e}",
                    state=IngestState.PARSING,
                ) from e
            tables.append(SourceTable(name=f.spec.name, url=f.url, text=f.text, rows=rows))
        return tables

    def run(self) -> IngestRunResult:
        try:
            return self._run()
        except IngestAbortedError:
            raise
        except Exception as e:
            raise IngestAbortedError(
                f"ofac_update failed in {self.state.value}: {type(e).__name__}: {e}",
                state=self.state,
            ) from e

    def _run(self) -> IngestRunResult:
        fetched_at = self._now()

        self._enter(IngestState.FETCHING)
        fetched = self.fetch_tables()
        degraded = [f.spec.name for f in fetched if not f.ok]
        if degraded:
            logger.warning("ofac_update degraded | empty_tables=%s", ",".join(degraded))

        self._enter(IngestState.PARSING)
        sdn, alt, add = self.parse_tables(fetched)

        self._enter(IngestState.EXTRACTING)
        entities = extract_entities(sdn.rows)

        self._enter(IngestState.CONSOLIDATING_ALIASES)
        entities = consolidate_aliases(entities, alt.rows)

        self._enter(IngestState.CONSOLIDATING_ADDRESSES)
        entities = consolidate_addresses(entities, add.rows)

        self._enter(IngestState.ENCODING)
        payload = encode_dataset(entities)
        meta = build_ingest_metadata(
            tables=[sdn, alt, add], entities=entities, fetched_at=fetched_at
        ).as_dict()

        blob_meta = {"fetchedAt": meta["fetchedAt"]}
        self.store.write_batch(
            [
                BlobWrite(
                    key=DATASET_KEY,
                    value=payload,
                    content_type="application/gzip",
                    metadata=blob_meta,
                ),
                BlobWrite(
                    key=META_KEY,
                    value=json_bytes(meta),
                    content_type="application/json",
                    metadata=blob_meta,
                ),
            ]
        )
        self._enter(IngestState.PERSISTED)

        logger.info(
            "ofac_update stored | entities=%s dataset_bytes=%s counts=%s",
            len(entities),
            len(payload),
            meta["counts"],
        )
        return IngestRunResult(
            state=self.state.value, entities=len(entities), metadata=meta
        )

    def debug_headers(self) -> dict[str, Any]:
        """Fetch and parse only; report headers and a sample row per table."""

        tables = self.parse_tables(self.fetch_tables())
        out: dict[str, Any] = {}
        for t in tables:
            first = dict(t.rows[0]) if t.rows else None
            out[f"{t.name}Headers"] = list(first.keys()) if first else []
            out[f"{t.name}SampleRow"] = first
        out["rowCounts"] = {t.name: len(t.rows) for t in tables}
        return out


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Download OFAC SDN/ALT/ADD exports and store the consolidated dataset"
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run (e.g. DEBUG, INFO, WARNING)",
    )
    p.add_argument(
        "--base-url",
        default=None,
        help="Export base URL (default: SETTINGS['OFAC_EXPORT_BASE'])",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (default: $OFAC_FETCH_TIMEOUT_SECONDS, else SETTINGS)",
    )
    p.add_argument(
        "--max-attempts",
        type=int,
        default=int(os.getenv("OFAC_FETCH_MAX_ATTEMPTS", "1")),
        help="Attempts per export on 429/5xx/connection errors (default: 1)",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=len(TABLES),
        help="Concurrent download threads (default: one per export)",
    )
    p.add_argument(
        "--debug-headers",
        action="store_true",
        help="Print normalized headers and a sample row per export; store nothing",
    )
    args, unknown = p.parse_known_args(argv)
    if unknown:
        logger.debug("Ignoring unknown CLI args: %s", unknown)
    return args


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    if args.log_level:
        os.environ["LOG_LEVEL"] = str(args.log_level)
        set_log_level(str(args.log_level))

    job = OfacUpdateJob(
        base_url=args.base_url,
        timeout_seconds=args.timeout,
        max_attempts=int(args.max_attempts),
        workers=int(args.workers),
    )
    logger.info(
        "ofac_update starting | cwd=%s base_url=%s timeout=%s workers=%s started_at=%s",
        os.getcwd(),
        args.base_url or "<settings>",
        args.timeout,
        job.workers,
        utc_isoformat(utcnow()),
    )

    try:
        if args.debug_headers:
            print(json.dumps(job.debug_headers(), indent=2, ensure_ascii=False))
            return

        result = job.run()
    except IngestAbortedError as e:
        logger.error(
            "ofac_update aborted; previous dataset left in place | state=%s err=%s",
            e.state.value,
            e,
        )
        raise SystemExit(1)
    except Exception:
        logger.exception("ofac_update crashed")
        raise

    counts = result.metadata.get("counts", {})
    print(
        f"\nofac_update: complete | entities={result.entities} "
        f"sdn_rows={counts.get('sdnRows')} alt_rows={counts.get('altRows')} "
        f"add_rows={counts.get('addRows')}"
    )


if __name__ == "__main__":
    main()
