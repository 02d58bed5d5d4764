"""Pydantic models for face captures and consolidated face profiles."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from attendface.face.vectors import DESCRIPTOR_LENGTH

PROFILE_VERSION: int = 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Capture(_CamelModel):
    """A single registration sample."""

    vector: list[float] = Field(description="Face descriptor (128 dimensions)")
    score: float | None = Field(default=None, ge=0.0, le=1.0, description="Detector confidence (0.0-1.0)")
    captured_at: str | None = Field(default=None, description="ISO-8601 capture time")


class FaceProfileStats(_CamelModel):
    """Summary statistics stored alongside a face profile."""

    capture_count: int = Field(ge=1)
    descriptor_length: int = DESCRIPTOR_LENGTH
    consistency_score: float = Field(ge=0.0, le=1.0)
    last_updated: str


class FaceProfile(_CamelModel):
    """Durable per-employee enrollment record."""

    version: Literal[1] = PROFILE_VERSION
    centroid: list[float] = Field(min_length=DESCRIPTOR_LENGTH, max_length=DESCRIPTOR_LENGTH)
    captures: list[Capture] = Field(min_length=1)
    stats: FaceProfileStats

    def to_storage(self) -> dict[str, Any]:
        """Return the JSON-compatible form to persist with the employee record."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
