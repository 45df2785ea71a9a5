from __future__ import annotations

import hashlib
from datetime import datetime, timezone

import pytest

from utils.ingest_metadata import SourceTable, build_ingest_metadata, sha256_text
from utils.ofac_entities import EntityAddress, SanctionedEntity


def _tables():
    return [
        SourceTable("sdn", "https://x.test/SDN.CSV", "sdn-text", rows=[{}, {}, {}]),
        SourceTable("alt", "https://x.test/ALT.CSV", "alt-text", rows=[{}, {}]),
        SourceTable("add", "https://x.test/ADD.CSV", "", rows=[]),
    ]


def _entities():
    return [
        SanctionedEntity(uid="1", name="A", aka=("A1",)),
        SanctionedEntity(uid="2", name="B", addresses=(EntityAddress(country="Cuba"),)),
    ]


def test_sha256_text_matches_hashlib():
    assert sha256_text("abc") == hashlib.sha256(b"abc").hexdigest()
    assert len(sha256_text("")) == 64


def test_metadata_shape():
    fetched = datetime(2024, 1, 5, 6, 0, 0, tzinfo=timezone.utc)
    meta = build_ingest_metadata(
        tables=_tables(), entities=_entities(), fetched_at=fetched
    ).as_dict()

    assert meta["lists"] == ["SDN", "ALT", "ADD"]
    assert meta["fetchedAt"] == "2024-01-05T06:00:00.000Z"
    assert meta["source"] == {
        "sdnUrl": "https://x.test/SDN.CSV",
        "altUrl": "https://x.test/ALT.CSV",
        "addUrl": "https://x.test/ADD.CSV",
    }
    assert meta["hashes"]["sdnSha256"] == sha256_text("sdn-text")
    assert meta["hashes"]["addSha256"] == sha256_text("")


def test_metadata_counts_and_skips():
    meta = build_ingest_metadata(tables=_tables(), entities=_entities()).as_dict()

    assert meta["counts"] == {
        "sdnRows": 3,
        "altRows": 2,
        "addRows": 0,
        "entities": 2,
        "sdnSkipped": 1,
        "altSkipped": 1,
        "addSkipped": 0,
    }


def test_fetched_at_defaults_to_now():
    meta = build_ingest_metadata(tables=_tables()[:1], entities=[])
    assert meta.fetched_at.endswith("Z")
    assert meta.lists == ("SDN",)


def test_requires_primary_table():
    with pytest.raises(ValueError):
        build_ingest_metadata(tables=[], entities=[])
