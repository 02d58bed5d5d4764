"""Nearest-neighbour matching of a live descriptor against enrolled employees."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from attendface.face.profile import DEFAULT_POLICY, extract_comparison_vectors
from attendface.face.vectors import euclidean_distance

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

logger = logging.getLogger(__name__)

E = TypeVar("E")

DEFAULT_MATCH_THRESHOLD: float = 0.6

_FACE_DATA_KEYS = ("faceData", "face_data", "faceDescriptors")


@dataclass(frozen=True)
class FaceMatch(Generic[E]):
    """The best-matching employee and its distance to the query."""

    employee: E
    distance: float

    @property
    def confidence(self) -> float:
        """``1 - distance``: monotonic in match quality, not a probability."""
        return 1.0 - self.distance


def default_face_data(employee: object) -> object:
    """Read the stored face blob from an employee record.

    Mappings are looked up by ``faceData``, ``face_data`` or
    ``faceDescriptors``; other objects by their ``face_data`` attribute.
    """
    if isinstance(employee, Mapping):
        for key in _FACE_DATA_KEYS:
            if employee.get(key) is not None:
                return employee[key]
        return None
    return getattr(employee, "face_data", None)


def _min_distance(query: Sequence[float], candidates: Iterable[Sequence[float]]) -> float:
    return min((euclidean_distance(query, candidate) for candidate in candidates), default=math.inf)


def match_face(
    query: Sequence[float],
    employees: Iterable[E],
    *,
    face_data: Callable[[E], object] = default_face_data,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    duplicate_distance: float = DEFAULT_POLICY.duplicate_distance,
) -> FaceMatch[E] | None:
    """Find the employee whose stored vectors come closest to ``query``.

    ``query`` must already be prepared with ``prepare_query_descriptor``.
    An employee wins only with a distance below ``threshold`` that is strictly
    lower than the best seen so far, so the first employee wins exact ties.
    Employees without usable stored vectors are skipped.

    Returns:
        The best FaceMatch, or ``None`` when nobody is below the threshold.
    """
    best: FaceMatch[E] | None = None
    scanned = 0

    for employee in employees:
        candidates = extract_comparison_vectors(face_data(employee), duplicate_distance=duplicate_distance)
        if not candidates:
            continue
        scanned += 1

        distance = _min_distance(query, candidates)
        if distance < threshold and (best is None or distance < best.distance):
            best = FaceMatch(employee=employee, distance=distance)

    if best is None:
        logger.debug("No match below %.3f among %d enrolled employees", threshold, scanned)
    else:
        logger.debug("Best match distance %.4f among %d enrolled employees", best.distance, scanned)
    return best
