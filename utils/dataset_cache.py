from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable

from logging_utils import get_logger
from utils.blob_store import BlobStore
from utils.dataset_codec import DATASET_KEY, decode_dataset
from utils.entity_search import DEFAULT_THRESHOLD, EntitySearchIndex, SearchHit
from utils.ofac_entities import SanctionedEntity

logger = get_logger(__name__)


class DatasetUnavailableError(RuntimeError):
    """No update run has persisted a dataset yet."""


@dataclass(frozen=True)
class DatasetSnapshot:
    entities: tuple[SanctionedEntity, ...]
    by_uid: Mapping[str, SanctionedEntity]
    search_index: EntitySearchIndex
    loaded_at: float


class DatasetCache:
    """Decompressed dataset held in memory for `ttl_seconds`.

    Build one per process and hand it to the request handlers. Expiry is
    checked against `clock` (monotonic seconds), so tests can inject a fake
    clock. After expiry the next read reloads from the blob store; a new
    update run becomes visible at the latest one TTL later.
    """

    def __init__(
        self,
        store: BlobStore,
        *,
        ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
        search_threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")

        self._store = store
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._search_threshold = search_threshold
        self._lock = threading.Lock()
        self._snapshot: DatasetSnapshot | None = None

    def _fresh(self, snapshot: DatasetSnapshot | None) -> bool:
        return snapshot is not None and self._clock() - snapshot.loaded_at < self._ttl

    def get_snapshot(self) -> DatasetSnapshot:
        with self._lock:
            snapshot = self._snapshot
        if self._fresh(snapshot):
            return snapshot  # type: ignore[return-value]

        blob = self._store.get(DATASET_KEY)
        if blob is None:
            raise DatasetUnavailableError(
                "No dataset yet. Run the OFAC update job first."
            )

        entities = tuple(decode_dataset(blob))
        snapshot = DatasetSnapshot(
            entities=entities,
            by_uid={e.uid: e for e in entities},
            search_index=EntitySearchIndex(entities, threshold=self._search_threshold),
            loaded_at=self._clock(),
        )
        logger.info(
            "Dataset loaded | entities=%s blob_bytes=%s ttl_s=%s",
            len(entities),
            len(blob),
            self._ttl,
        )

        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None

    def get_entity(self, uid: str) -> SanctionedEntity | None:
        return self.get_snapshot().by_uid.get(uid)

    def search(self, query: str, *, limit: int = 20) -> list[SearchHit]:
        return self.get_snapshot().search_index.search(query, limit=limit)
