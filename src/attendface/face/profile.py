"""Face profile engine: consolidate captures into a profile and read it back.

Building a profile runs the pooled captures (stored history first, then the new
submission) through:

    normalize -> reject outliers -> deduplicate -> trim history -> assemble

Outlier rejection measures distances to the centroid of *all* pooled captures;
the stored centroid is computed afterwards from the retained captures only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from attendface.face.clock import Clock, SystemClock, format_timestamp, parse_timestamp, synthetic_timestamps
from attendface.face.errors import FaceDataError
from attendface.face.models import PROFILE_VERSION, Capture, FaceProfile, FaceProfileStats
from attendface.face.storage_format import (
    extract_entries,
    format_centroid,
    format_entries,
    parse_descriptor_payload,
    parse_stored_data,
)
from attendface.face.vectors import (
    DESCRIPTOR_LENGTH,
    Vector,
    coerce_number_array,
    compute_centroid,
    deduplicate_vectors,
    euclidean_distance,
    normalize,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfilePolicy:
    """Thresholds used when consolidating captures."""

    outlier_distance: float = 0.65
    duplicate_distance: float = 0.015
    max_capture_history: int = 12
    consistency_scale: float = 0.8


DEFAULT_POLICY = ProfilePolicy()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_face_profile(
    raw_descriptors: object,
    existing: object = None,
    *,
    clock: Clock | None = None,
    policy: ProfilePolicy | None = None,
) -> FaceProfile:
    """Merge a new descriptor submission into an employee's face profile.

    Args:
        raw_descriptors: Non-empty list of bare vectors or
            ``{vector, score?, capturedAt?}`` mappings.
        existing: The previously stored profile blob (any supported format),
            or ``None`` for a first registration.
        clock: Source of the current time; defaults to the system clock.
        policy: Consolidation thresholds; defaults to ``DEFAULT_POLICY``.

    Returns:
        A new FaceProfile replacing the stored one.

    Raises:
        FaceDataError: If the submission is invalid or nothing usable remains.
    """
    clock = clock or SystemClock()
    policy = policy or DEFAULT_POLICY

    existing_entries = extract_entries(existing)
    new_entries = parse_descriptor_payload(raw_descriptors)

    stamps = synthetic_timestamps(clock, len(new_entries))
    new_entries = [
        entry if entry.captured_at else entry.model_copy(update={"captured_at": stamp})
        for entry, stamp in zip(new_entries, stamps, strict=True)
    ]

    logger.debug(
        "Building face profile from %d stored and %d new captures",
        len(existing_entries),
        len(new_entries),
    )
    return _build_from_entries([*existing_entries, *new_entries], clock, policy)


def prepare_query_descriptor(raw: object) -> Vector:
    """Validate and normalize a live descriptor for matching.

    Raises:
        FaceDataError: If the input is not 128 finite numbers.
    """
    vector = coerce_number_array(raw)
    if vector is None or len(vector) != DESCRIPTOR_LENGTH:
        raise FaceDataError("invalid face descriptor")
    return normalize(vector)


def extract_comparison_vectors(
    stored: object,
    *,
    duplicate_distance: float = DEFAULT_POLICY.duplicate_distance,
) -> list[Vector]:
    """Return the distinct normalized vectors a stored profile can be matched on.

    Every stored capture contributes its vector; a stored centroid is added as
    one more candidate.
    """
    fmt = parse_stored_data(stored)
    vectors = [normalize(entry.vector) for entry in format_entries(fmt)]
    centroid = format_centroid(fmt)
    if centroid is not None:
        vectors.append(normalize(centroid))
    return deduplicate_vectors(vectors, duplicate_distance)


# ---------------------------------------------------------------------------
# Consolidation steps
# ---------------------------------------------------------------------------


def _capture_time(entry: Capture) -> float:
    return parse_timestamp(entry.captured_at)


def _reject_outliers(entries: list[Capture], threshold: float) -> list[Capture]:
    if len(entries) <= 2:
        return entries

    pooled_centroid = compute_centroid([entry.vector for entry in entries])
    kept = [entry for entry in entries if euclidean_distance(entry.vector, pooled_centroid) <= threshold]
    if not kept:
        logger.debug("Outlier rejection would drop all %d captures; keeping them", len(entries))
        return entries
    if len(kept) < len(entries):
        logger.debug("Dropped %d outlier captures", len(entries) - len(kept))
    return kept


def _deduplicate(entries: list[Capture], threshold: float) -> list[Capture]:
    unique: list[Capture] = []
    for entry in entries:
        if all(euclidean_distance(kept.vector, entry.vector) >= threshold for kept in unique):
            unique.append(entry)
    if len(unique) < len(entries):
        logger.debug("Collapsed %d near-duplicate captures", len(entries) - len(unique))
    return unique


def _trim_history(entries: list[Capture], limit: int) -> list[Capture]:
    if len(entries) <= limit:
        return entries
    logger.debug("Trimming capture history from %d to %d", len(entries), limit)
    return sorted(entries, key=_capture_time)[-limit:]


def _consistency_score(vectors: Sequence[Vector], centroid: Vector, scale: float) -> float:
    if not vectors:
        return 0.0
    if len(vectors) == 1:
        return 1.0
    average = sum(euclidean_distance(vector, centroid) for vector in vectors) / len(vectors)
    return round(min(1.0, max(0.0, 1.0 - average / scale)), 4)


def _build_from_entries(entries: list[Capture], clock: Clock, policy: ProfilePolicy) -> FaceProfile:
    if not entries:
        raise FaceDataError("at least one face descriptor is required")

    normalized = [entry.model_copy(update={"vector": normalize(entry.vector)}) for entry in entries]
    normalized = [entry for entry in normalized if len(entry.vector) == DESCRIPTOR_LENGTH]
    if not normalized:
        raise FaceDataError("no valid face descriptors")

    retained = _reject_outliers(normalized, policy.outlier_distance)
    retained = _deduplicate(retained, policy.duplicate_distance)
    retained = _trim_history(retained, policy.max_capture_history)
    if not retained:
        raise FaceDataError("no valid face descriptors left after processing")

    vectors = [entry.vector for entry in retained]
    centroid = compute_centroid(vectors)
    ordered = sorted(retained, key=_capture_time)
    last_updated = ordered[-1].captured_at or format_timestamp(clock.now())

    return FaceProfile(
        version=PROFILE_VERSION,
        centroid=centroid,
        captures=[
            Capture(
                vector=entry.vector,
                score=entry.score,
                captured_at=entry.captured_at or last_updated,
            )
            for entry in ordered
        ],
        stats=FaceProfileStats(
            capture_count=len(ordered),
            descriptor_length=DESCRIPTOR_LENGTH,
            consistency_score=_consistency_score(vectors, centroid, policy.consistency_scale),
            last_updated=last_updated,
        ),
    )
