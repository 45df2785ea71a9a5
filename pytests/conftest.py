from __future__ import annotations

from typing import Generator

import pytest
from sqlalchemy.engine import Engine

from app import create_app
from pytests.common import FakeClock, create_empty_sqlite_db, patch_app_db
from utils.blob_store import BlobStore
from utils.dataset_codec import DATASET_KEY, encode_dataset
from utils.ingest_metadata import META_KEY
from utils.ofac_entities import EntityAddress, SanctionedEntity


SAMPLE_ENTITIES = [
    SanctionedEntity(
        uid="306",
        name="BANCO NACIONAL DE CUBA",
        type="Entity",
        programs=("CUBA",),
        remarks="Also BNC.",
        aka=("BNC", "NATIONAL BANK OF CUBA"),
        addresses=(
            EntityAddress(
                address="Zweierstrasse 35", city="Zurich CH-8022", country="Switzerland"
            ),
        ),
    ),
    SanctionedEntity(
        uid="7140",
        name="HAMADEI, Ali Atwa",
        type="Individual",
        programs=("SDGT",),
        aka=("ATWA, Ali",),
    ),
    SanctionedEntity(uid="36", name="AEROCARIBBEAN AIRLINES", programs=("CUBA",)),
]

SAMPLE_META = {
    "lists": ["SDN", "ALT", "ADD"],
    "fetchedAt": "2024-01-05T06:00:00.000Z",
    "source": {
        "sdnUrl": "https://example.test/SDN.CSV",
        "altUrl": "https://example.test/ALT.CSV",
        "addUrl": "https://example.test/ADD.CSV",
    },
    "counts": {"sdnRows": 3, "altRows": 3, "addRows": 1, "entities": 3},
    "hashes": {"sdnSha256": "a" * 64, "altSha256": "b" * 64, "addSha256": "c" * 64},
}


@pytest.fixture()
def sqlite_engine(tmp_path, monkeypatch) -> Generator[Engine, None, None]:
    """Temp SQLite DB with all tables, wired into `db.SessionLocal`."""

    session, engine = create_empty_sqlite_db(tmp_path / "test.sqlite")
    session.close()
    patch_app_db(monkeypatch, engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def blob_store(sqlite_engine) -> BlobStore:
    return BlobStore()


@pytest.fixture()
def seeded_store(blob_store) -> BlobStore:
    blob_store.set(DATASET_KEY, encode_dataset(SAMPLE_ENTITIES))
    blob_store.set_json(META_KEY, SAMPLE_META)
    return blob_store


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def client(seeded_store, fake_clock):
    app = create_app(store=seeded_store, clock=fake_clock)
    app.config.update(TESTING=True)

    with app.test_client() as c:
        yield c


@pytest.fixture()
def empty_client(blob_store, fake_clock):
    """App over a DB where no update run has stored anything yet."""

    app = create_app(store=blob_store, clock=fake_clock)
    app.config.update(TESTING=True)

    with app.test_client() as c:
        yield c
