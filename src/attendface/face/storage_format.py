"""Parsing of descriptor submissions and stored face-profile blobs.

Stored blobs come in several historical shapes. ``parse_stored_data`` is the
only place that knows about them; everything downstream works with canonical
``Capture`` lists.

Supported stored shapes:
    None / empty           -> EmptyFormat
    [vector | {vector}]    -> LegacyArrayFormat (pre-profile records)
    {centroid, stats?}     -> LegacyCentroidFormat (centroid-only records)
    {version, captures, …} -> VersionedFormat
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from numbers import Real

import numpy as np

from attendface.face.errors import FaceDataError
from attendface.face.models import Capture, FaceProfile
from attendface.face.vectors import DESCRIPTOR_LENGTH, Vector, coerce_number_array

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stored formats
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmptyFormat:
    """No usable face history."""


@dataclass(frozen=True)
class LegacyArrayFormat:
    """A bare array of descriptors, stored before profiles existed."""

    entries: tuple[Capture, ...]


@dataclass(frozen=True)
class LegacyCentroidFormat:
    """A record holding only a centroid."""

    centroid: Vector
    last_updated: str | None


@dataclass(frozen=True)
class VersionedFormat:
    """A face profile with its retained captures."""

    captures: tuple[Capture, ...]
    centroid: Vector | None


StoredProfileFormat = EmptyFormat | LegacyArrayFormat | LegacyCentroidFormat | VersionedFormat


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _clamp_score(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    score = float(value)
    if not math.isfinite(score):
        return None
    return max(0.0, min(1.0, score))


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _descriptor_vector(value: object) -> Vector | None:
    vector = coerce_number_array(value)
    if vector is None or len(vector) != DESCRIPTOR_LENGTH:
        return None
    return vector


def _length_error(index: int) -> FaceDataError:
    return FaceDataError(f"descriptor at index {index} does not have length {DESCRIPTOR_LENGTH}")


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


def parse_descriptor_payload(payload: object) -> list[Capture]:
    """Validate a raw descriptor submission.

    Each item is either a bare vector or a mapping with ``vector`` and
    optional ``score`` (or ``confidence``) and ``capturedAt``. The whole
    submission fails on the first bad item.

    Raises:
        FaceDataError: If the payload is empty, not a list, or any item is
            malformed; the message names the offending index.
    """
    if not isinstance(payload, (list, tuple)) or not payload:
        raise FaceDataError("at least one face descriptor is required")

    captures: list[Capture] = []
    for index, item in enumerate(payload):
        if isinstance(item, Mapping):
            vector = _descriptor_vector(item.get("vector"))
            if vector is None:
                raise _length_error(index)
            raw_score = item.get("score")
            if raw_score is None:
                raw_score = item.get("confidence")
            captures.append(
                Capture(
                    vector=vector,
                    score=_clamp_score(raw_score),
                    captured_at=_optional_str(item.get("capturedAt")),
                )
            )
            continue

        if not isinstance(item, (list, tuple, np.ndarray)):
            raise FaceDataError(f"unsupported descriptor format at index {index}")
        vector = _descriptor_vector(item)
        if vector is None:
            raise _length_error(index)
        captures.append(Capture(vector=vector))

    return captures


# ---------------------------------------------------------------------------
# Stored data
# ---------------------------------------------------------------------------


def _parse_stored_captures(raw_captures: list[object] | tuple[object, ...]) -> tuple[Capture, ...]:
    parsed: list[Capture] = []
    for raw in raw_captures:
        if not isinstance(raw, Mapping):
            continue
        vector = _descriptor_vector(raw.get("vector"))
        if vector is None:
            continue
        parsed.append(
            Capture(
                vector=vector,
                score=_clamp_score(raw.get("score")),
                captured_at=_optional_str(raw.get("capturedAt")),
            )
        )
    return tuple(parsed)


def parse_stored_data(stored: object) -> StoredProfileFormat:
    """Classify a stored face blob into one of the known formats."""
    if isinstance(stored, FaceProfile):
        stored = stored.to_storage()

    if stored is None or (isinstance(stored, (list, tuple, Mapping)) and not stored):
        return EmptyFormat()

    if isinstance(stored, (list, tuple)):
        try:
            return LegacyArrayFormat(entries=tuple(parse_descriptor_payload(stored)))
        except FaceDataError as exc:
            logger.warning("Ignoring unusable legacy face descriptors: %s", exc)
            return EmptyFormat()

    if not isinstance(stored, Mapping):
        return EmptyFormat()

    centroid = _descriptor_vector(stored.get("centroid"))
    raw_captures = stored.get("captures")
    if isinstance(raw_captures, (list, tuple)) and raw_captures:
        captures = _parse_stored_captures(raw_captures)
        if captures:
            return VersionedFormat(captures=captures, centroid=centroid)

    if centroid is not None:
        stats = stored.get("stats")
        last_updated = _optional_str(stats.get("lastUpdated")) if isinstance(stats, Mapping) else None
        return LegacyCentroidFormat(centroid=centroid, last_updated=last_updated)

    return EmptyFormat()


def format_entries(fmt: StoredProfileFormat) -> list[Capture]:
    """Return the captures held by a parsed stored format, in stored order."""
    if isinstance(fmt, LegacyArrayFormat):
        return list(fmt.entries)
    if isinstance(fmt, VersionedFormat):
        return list(fmt.captures)
    if isinstance(fmt, LegacyCentroidFormat):
        return [Capture(vector=fmt.centroid, captured_at=fmt.last_updated)]
    return []


def format_centroid(fmt: StoredProfileFormat) -> Vector | None:
    """Return the stored centroid of a parsed format, if it carries a valid one."""
    if isinstance(fmt, (VersionedFormat, LegacyCentroidFormat)):
        return fmt.centroid
    return None


def extract_entries(stored: object) -> list[Capture]:
    """Return the captures held by a stored blob (empty when there is no usable history)."""
    return format_entries(parse_stored_data(stored))
