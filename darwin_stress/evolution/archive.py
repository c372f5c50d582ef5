"""
Darwin Stress — HallOfFame.

Fitness-ranked archive of structurally distinct strategies seen during one
evolution run. After each generation the engine offers the generation's
best individual; it is admitted when

    - no entry lies within DEDUPE_DISTANCE in allocation space, and
    - the hall is empty or its fitness is >= 95% of the current best entry.

The hall stays sorted by fitness descending and capped at max_size, which
favours the leading lineage while still letting distinct strategies in.
Entries are deep copies: later population churn cannot alter them.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from darwin_stress.evolution.allocation import allocation_distance
from darwin_stress.interfaces.types import EvolvedPortfolio

logger = logging.getLogger("darwin.stress.archive")

DEDUPE_DISTANCE = 0.05
ADMISSION_RATIO = 0.95


class HallOfFame:
    """
    Parameters:
        max_size:         Maximum entries kept (default 5)
        dedupe_distance:  Euclidean allocation distance at or below which a
                          candidate counts as a near-duplicate (default 0.05)
        admission_ratio:  Candidate must reach this fraction of the best
                          entry's fitness (default 0.95)
    """

    __slots__ = ("_entries", "_max_size", "_dedupe_distance", "_admission_ratio")

    def __init__(
        self,
        max_size: int = 5,
        dedupe_distance: float = DEDUPE_DISTANCE,
        admission_ratio: float = ADMISSION_RATIO,
    ) -> None:
        self._entries: List[EvolvedPortfolio] = []
        self._max_size = max_size
        self._dedupe_distance = dedupe_distance
        self._admission_ratio = admission_ratio

    # ════════════════════════════════════════════════════════
    # Properties
    # ════════════════════════════════════════════════════════

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[EvolvedPortfolio]:
        return list(self._entries)

    @property
    def best(self) -> Optional[EvolvedPortfolio]:
        return self._entries[0] if self._entries else None

    # ════════════════════════════════════════════════════════
    # Admission
    # ════════════════════════════════════════════════════════

    def is_duplicate(self, candidate: EvolvedPortfolio) -> bool:
        return any(
            allocation_distance(candidate.portfolio, e.portfolio) <= self._dedupe_distance
            for e in self._entries
        )

    def consider(self, candidate: EvolvedPortfolio, generation: int) -> bool:
        """
        Offer a generation's best individual. Returns True when admitted.
        The stored entry is an independent copy tagged with `generation`.
        """
        if self._entries and candidate.fitness < self._entries[0].fitness * self._admission_ratio:
            return False
        if self.is_duplicate(candidate):
            return False

        self._entries.append(candidate.copy(generation=generation))
        self._entries.sort(key=lambda e: e.fitness, reverse=True)
        del self._entries[self._max_size:]

        logger.debug(
            "hall of fame: admitted gen=%d fitness=%.4f (size %d/%d)",
            generation, candidate.fitness, len(self._entries), self._max_size,
        )
        return True

    # ════════════════════════════════════════════════════════
    # Inspection
    # ════════════════════════════════════════════════════════

    def summary(self) -> Dict[str, Any]:
        best = self.best
        if best is None:
            return {"size": 0, "max_size": self._max_size, "best_fitness": 0.0}
        return {
            "size": len(self._entries),
            "max_size": self._max_size,
            "best_fitness": round(best.fitness, 6),
            "mean_fitness": round(sum(e.fitness for e in self._entries) / len(self._entries), 6),
            "generations": sorted({e.generation for e in self._entries}),
        }
