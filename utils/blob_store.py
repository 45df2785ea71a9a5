from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import inspect
from sqlalchemy.orm import Session

import db
from logging_utils import get_logger
from models.blob_entries import BlobEntry
from utils.time_utils import utcnow

logger = get_logger(__name__)


@dataclass(frozen=True)
class BlobWrite:
    key: str
    value: bytes
    content_type: str = "application/octet-stream"
    metadata: dict[str, Any] | None = None


class BlobStore:
    """Key/value blob storage backed by the `blob_entries` table.

    Reads on a database where the table does not exist yet return None (the
    same as a missing key). `write_batch` replaces all given keys in one
    transaction, so readers see either the previous blobs or the new ones.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        # Resolved per call so tests can swap `db.SessionLocal`.
        self._session_factory = session_factory

    def _session(self) -> Session:
        factory = self._session_factory or db.SessionLocal
        return factory()

    @staticmethod
    def _has_table(session: Session) -> bool:
        return inspect(session.get_bind()).has_table(BlobEntry.__tablename__)

    def ensure_schema(self) -> None:
        with self._session() as s:
            BlobEntry.__table__.create(bind=s.get_bind(), checkfirst=True)

    def get(self, key: str) -> bytes | None:
        with self._session() as s:
            if not self._has_table(s):
                logger.debug("Blob table missing; treating as empty | key=%s", key)
                return None
            row = s.get(BlobEntry, key)
            if row is None:
                return None
            return bytes(row.value)

    def get_json(self, key: str) -> Any | None:
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw.decode("utf-8"))

    def set(
        self,
        key: str,
        value: bytes,
        *,
        content_type: str = "application/octet-stream",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.write_batch(
            [BlobWrite(key=key, value=value, content_type=content_type, metadata=metadata)]
        )

    def set_json(
        self, key: str, record: Any, *, metadata: dict[str, Any] | None = None
    ) -> None:
        self.set(
            key,
            json_bytes(record),
            content_type="application/json",
            metadata=metadata,
        )

    def write_batch(self, writes: Sequence[BlobWrite]) -> None:
        if not writes:
            return

        self.ensure_schema()
        now = utcnow()
        with self._session() as s:
            with s.begin():
                for w in writes:
                    s.merge(
                        BlobEntry(
                            key=w.key,
                            value=bytes(w.value),
                            content_type=w.content_type,
                            blob_metadata=w.metadata,
                            size_bytes=len(w.value),
                            updated_at=now,
                        )
                    )

        logger.info(
            "Blobs written | keys=%s bytes=%s",
            ",".join(w.key for w in writes),
            sum(len(w.value) for w in writes),
        )


def json_bytes(record: Any) -> bytes:
    return json.dumps(record, ensure_ascii=False).encode("utf-8")
