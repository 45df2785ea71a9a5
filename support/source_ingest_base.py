from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any

from utils.blob_store import BlobStore


@dataclass(frozen=True)
class IngestRunResult:
    state: str
    entities: int
    metadata: dict[str, Any] = field(default_factory=dict)


class SourceIngestBase(abc.ABC):
    """Reusable base class for source ingestion jobs.

    Subclasses should implement:
    - `source_name`: short identifier used in logs (e.g. 'ofac').
    - `run()`: fetch, build and persist one full replacement dataset.

    A run either reaches its final state and writes everything, or raises and
    writes nothing; there are no incremental updates.
    """

    source_name: str

    def __init__(self, *, store: BlobStore | None = None) -> None:
        self.store = store or BlobStore()

    @abc.abstractmethod
    def run(self) -> IngestRunResult:  # pragma: no cover
        raise NotImplementedError
