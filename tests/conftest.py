"""Shared fixtures: deterministic descriptors and clocks."""

from __future__ import annotations

from datetime import UTC, datetime

import numpy as np
import pytest

from attendface.face.clock import FixedClock

DIM = 128


class DescriptorFactory:
    """Builds reproducible 128-dimensional descriptors.

    ``similar`` returns captures of one face: a shared base plus small noise,
    about 0.3 from their centroid and 0.4 from each other once normalized.
    ``unrelated`` returns an independent random face (about 1.4 from anything else).
    """

    def __init__(self, seed: int = 1234) -> None:
        self._rng = np.random.default_rng(seed)

    def unrelated(self) -> list[float]:
        return self._rng.normal(size=DIM).tolist()

    def similar(self, count: int, noise: float = 0.3) -> list[list[float]]:
        base = self._rng.normal(size=DIM)
        return [(base + self._rng.normal(scale=noise, size=DIM)).tolist() for _ in range(count)]

    @staticmethod
    def basis(index: int, scale: float = 1.0) -> list[float]:
        vector = [0.0] * DIM
        vector[index] = scale
        return vector


@pytest.fixture()
def descriptors() -> DescriptorFactory:
    return DescriptorFactory()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 5, 8, 30, tzinfo=UTC))
