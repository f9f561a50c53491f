"""Injectable randomness for the simulation."""

from __future__ import annotations

from typing import Protocol


class RandomSource(Protocol):
    """Anything producing floats in ``[0, 1)``.

    :class:`random.Random` satisfies this; seed it for deterministic replay.
    """

    def random(self) -> float: ...


def uniform(rng: RandomSource, low: float, high: float) -> float:
    """Draw from ``[low, high)`` using a single ``random()`` call."""
    return low + (high - low) * rng.random()
