"""Face registration and recognition as used by the attendance backend.

The service holds no employee state: callers load the employee snapshot,
pass it in, and persist returned profiles themselves (as one atomic
read-modify-write per employee).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from attendface.config import Settings, get_settings
from attendface.face.clock import Clock, SystemClock
from attendface.face.matcher import default_face_data, match_face
from attendface.face.profile import build_face_profile, prepare_query_descriptor

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from attendface.face.models import FaceProfile

logger = logging.getLogger(__name__)


class RecognitionResult(BaseModel):
    """Outcome of a successful recognition."""

    model_config = ConfigDict(frozen=True)

    employee: Any
    distance: float = Field(ge=0.0)
    confidence: float = Field(description="1 - distance; a ranking aid, not a probability")


def is_active_employee(employee: object) -> bool:
    """Return the employee's active flag.

    A missing or null flag counts as active, matching the column default.
    """
    if isinstance(employee, Mapping):
        flag = employee.get("isActive")
        if flag is None:
            flag = employee.get("is_active")
    else:
        flag = getattr(employee, "is_active", None)
    return True if flag is None else bool(flag)


class FaceAttendanceService:
    """Registers employee faces and recognizes them at check-in."""

    def __init__(self, settings: Settings | None = None, clock: Clock | None = None) -> None:
        self._settings = settings or get_settings()
        self._clock = clock or SystemClock()
        self._policy = self._settings.profile_policy()

    @property
    def settings(self) -> Settings:
        return self._settings

    def register_face(self, employee_id: str, descriptors: object, existing: object = None) -> FaceProfile:
        """Merge newly captured descriptors into an employee's stored profile.

        Raises:
            FaceDataError: If the descriptors are invalid.
        """
        profile = build_face_profile(descriptors, existing, clock=self._clock, policy=self._policy)
        logger.info(
            "Registered face for employee %s (captures=%d, consistency=%.4f)",
            employee_id,
            profile.stats.capture_count,
            profile.stats.consistency_score,
        )
        return profile

    def recognize(
        self,
        descriptor: object,
        employees: Iterable[Any],
        *,
        face_data: Callable[[Any], object] = default_face_data,
    ) -> RecognitionResult | None:
        """Identify the active employee matching a live descriptor.

        Raises:
            FaceDataError: If the descriptor is not a valid 128-length vector.
        """
        query = prepare_query_descriptor(descriptor)
        candidates = [employee for employee in employees if is_active_employee(employee)]

        match = match_face(
            query,
            candidates,
            face_data=face_data,
            threshold=self._settings.match_threshold,
            duplicate_distance=self._policy.duplicate_distance,
        )
        if match is None:
            logger.info("Face not recognized among %d active employees", len(candidates))
            return None

        logger.info("Face recognized (distance=%.4f, confidence=%.4f)", match.distance, match.confidence)
        return RecognitionResult(
            employee=match.employee,
            distance=match.distance,
            confidence=match.confidence,
        )
