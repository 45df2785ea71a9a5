"""Fuzzy name search over consolidated entities.

Scores are distances: 0 is a perfect match, 1 is no similarity. Each entity
is scored per field (primary name, best alias) with rapidfuzz's WRatio; fields
that pass the threshold are combined as a weighted product, so a strong
primary-name hit ranks above an equally strong alias hit.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

from rapidfuzz import fuzz, process
from rapidfuzz.utils import default_process

from utils.ofac_entities import SanctionedEntity

NAME_WEIGHT = 0.7
AKA_WEIGHT = 0.3
DEFAULT_THRESHOLD = 0.35

# Stand-in for an exact (0.0) distance so the weighted product still orders
# name hits ahead of alias hits.
_EPSILON = 2.220446049250313e-16


class SearchHit(NamedTuple):
    entity: SanctionedEntity
    score: float


class EntitySearchIndex:
    def __init__(
        self,
        entities: Sequence[SanctionedEntity],
        *,
        threshold: float = DEFAULT_THRESHOLD,
        name_weight: float = NAME_WEIGHT,
        aka_weight: float = AKA_WEIGHT,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        total = name_weight + aka_weight
        if total <= 0:
            raise ValueError("weights must sum to > 0")

        self._entities = list(entities)
        self._threshold = float(threshold)
        self._name_weight = name_weight / total
        self._aka_weight = aka_weight / total

        self._names = [e.name for e in self._entities]
        self._aka: list[str] = []
        self._aka_owner: list[int] = []
        for pos, e in enumerate(self._entities):
            for alias in e.aka:
                self._aka.append(alias)
                self._aka_owner.append(pos)

    def __len__(self) -> int:
        return len(self._entities)

    def _distances(self, query: str, choices: list[str]) -> list[tuple[int, float]]:
        matches = process.extract(
            query,
            choices,
            scorer=fuzz.WRatio,
            processor=default_process,
            score_cutoff=(1.0 - self._threshold) * 100.0,
            limit=None,
        )
        return [(idx, 1.0 - float(score) / 100.0) for _choice, score, idx in matches]

    def search(self, query: str, *, limit: int = 20) -> list[SearchHit]:
        q = (query or "").strip()
        if not q or limit <= 0 or not self._entities:
            return []

        name_dist: dict[int, float] = dict(self._distances(q, self._names))

        aka_dist: dict[int, float] = {}
        for idx, dist in self._distances(q, self._aka):
            owner = self._aka_owner[idx]
            if dist < aka_dist.get(owner, 2.0):
                aka_dist[owner] = dist

        scored: list[tuple[float, int]] = []
        for pos in set(name_dist) | set(aka_dist):
            score = 1.0
            if pos in name_dist:
                score *= max(name_dist[pos], _EPSILON) ** self._name_weight
            if pos in aka_dist:
                score *= max(aka_dist[pos], _EPSILON) ** self._aka_weight
            scored.append((score, pos))

        scored.sort()
        return [SearchHit(self._entities[pos], score) for score, pos in scored[:limit]]
