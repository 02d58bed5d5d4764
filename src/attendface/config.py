"""Environment-based configuration for AttendFace."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from attendface.face.profile import ProfilePolicy


class Settings(BaseSettings):
    """Application settings loaded from ATTENDFACE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ATTENDFACE_",
        case_sensitive=False,
    )

    # Recognition
    match_threshold: float = Field(default=0.6, gt=0)

    # Profile consolidation
    outlier_distance_threshold: float = Field(default=0.65, gt=0)
    duplicate_distance_threshold: float = Field(default=0.015, ge=0)
    max_capture_history: int = Field(default=12, ge=1)
    consistency_scale: float = Field(default=0.8, gt=0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    def profile_policy(self) -> ProfilePolicy:
        """Return the consolidation thresholds as a ProfilePolicy."""
        return ProfilePolicy(
            outlier_distance=self.outlier_distance_threshold,
            duplicate_distance=self.duplicate_distance_threshold,
            max_capture_history=self.max_capture_history,
            consistency_scale=self.consistency_scale,
        )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
