"""Vector utilities for 128-dimensional face descriptors.

Vectors cross the library boundary as plain ``list[float]`` so profiles stay
JSON-compatible; numpy is used for the arithmetic only.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from numbers import Real
from typing import TYPE_CHECKING

import numpy as np

from attendface.face.errors import EmptyInputError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from numpy.typing import NDArray

DESCRIPTOR_LENGTH: int = 128
ROUND_DIGITS: int = 8

Vector = list[float]


def _as_array(vector: Sequence[float] | NDArray[np.float64]) -> NDArray[np.float64]:
    return np.asarray(vector, dtype=np.float64).reshape(-1)


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the L2 distance between two vectors.

    Vectors of different lengths are never comparable: the distance is
    ``inf``, which every threshold check treats as "no match".
    """
    if len(a) != len(b):
        return math.inf
    return float(np.linalg.norm(_as_array(a) - _as_array(b)))


def normalize(vector: Sequence[float]) -> Vector:
    """Scale a vector to unit length, rounding each component to 8 decimals.

    A zero or non-finite magnitude leaves the components as they are.
    """
    arr = _as_array(vector)
    with np.errstate(over="ignore", invalid="ignore"):
        magnitude = float(np.linalg.norm(arr))
    if not magnitude or not math.isfinite(magnitude):
        return [float(value) for value in arr]
    return np.round(arr / magnitude, ROUND_DIGITS).tolist()


def _to_finite_float(value: object) -> float | None:
    # bool is a Real subclass but never a descriptor component
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        try:
            parsed = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def coerce_number_array(value: object) -> Vector | None:
    """Convert array-like input into a list of finite floats.

    Returns ``None`` when the input is not array-like or when any element is
    not a finite number; a partially converted vector is never returned.
    """
    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            return None
        items: Iterable[object] = value.tolist()
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return None

    result: Vector = []
    for item in items:
        parsed = _to_finite_float(item)
        if parsed is None:
            return None
        result.append(parsed)
    return result


def compute_centroid(vectors: Sequence[Sequence[float]]) -> Vector:
    """Return the componentwise mean of equal-length vectors, rounded to 8 decimals.

    Raises:
        EmptyInputError: If ``vectors`` is empty.
    """
    if not vectors:
        raise EmptyInputError("no face data to compute a centroid from")
    matrix = np.asarray(vectors, dtype=np.float64)
    return np.round(matrix.mean(axis=0), ROUND_DIGITS).tolist()


def deduplicate_vectors(vectors: Iterable[Vector], threshold: float) -> list[Vector]:
    """Keep each vector only if it is at least ``threshold`` away from every kept one."""
    unique: list[Vector] = []
    for vector in vectors:
        if all(euclidean_distance(kept, vector) >= threshold for kept in unique):
            unique.append(vector)
    return unique
