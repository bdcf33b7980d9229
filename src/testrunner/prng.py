"""Seedable pseudo-random source shared by every nondeterministic choice of a run."""

from __future__ import annotations

import json
import random
from collections.abc import Sequence
from typing import Any, TypeVar

from testrunner.errors import InvalidInput

T = TypeVar("T")

_SEED_BITS = 32


def _seed_material(seed: Any) -> int | float | str | bytes | bytearray:
    """Seed accepted by ``random.Random``; other values map to stable JSON text."""
    if isinstance(seed, (int, float, str, bytes, bytearray)):
        return seed
    return json.dumps(seed, sort_keys=True, default=repr)


class PRNG:
    """Deterministic random-number source.

    Every draw goes through :meth:`random`, so two instances built with the
    same seed produce the same shuffles and weighted picks. When no seed is
    given one is drawn from system entropy and kept on :attr:`seed` so the
    run can be replayed.

    Usage:
        rng = PRNG(seed=42)
        rng.shuffle(["a", "b", "c"])
        rng.weighted_index([1, 3])
    """

    def __init__(self, seed: Any = None) -> None:
        if seed is None:
            seed = random.SystemRandom().getrandbits(_SEED_BITS)
        self.seed = seed
        self._random = random.Random(_seed_material(seed))

    def random(self) -> float:
        """Next float in [0, 1)."""
        return self._random.random()

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random()

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise InvalidInput("Cannot choose from an empty sequence")
        return items[int(self.random() * len(items))]

    def shuffle(self, items: Sequence[T]) -> list[T]:
        """Return a shuffled copy of ``items`` (Fisher–Yates, input untouched)."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            result[i], result[j] = result[j], result[i]
        return result

    def weighted_index(self, weights: Sequence[float]) -> int:
        """Pick index ``i`` with probability ``weights[i] / sum(weights)``."""
        if not weights:
            raise InvalidInput("Cannot pick from an empty weight list")
        if any(w < 0 for w in weights):
            raise InvalidInput(f"Weights must be non-negative: {list(weights)}")
        total = sum(weights)
        if total <= 0:
            raise InvalidInput(f"Weights must sum to a positive number: {list(weights)}")
        if len(weights) == 1:
            return 0

        target = self.random() * total
        cumulative = 0.0
        for index, weight in enumerate(weights):
            cumulative += weight
            if target < cumulative:
                return index
        # Float rounding can leave target == total; fall back to the last positive weight.
        return max(i for i, w in enumerate(weights) if w > 0)

    def __repr__(self) -> str:
        return f"PRNG(seed={self.seed!r})"
