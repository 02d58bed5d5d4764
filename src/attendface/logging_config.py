"""Logging setup shared by the services embedding AttendFace."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from attendface.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure the root logger at the configured level.

    Calling this more than once replaces the existing handlers so the latest
    settings win.
    """
    logging.basicConfig(
        level=settings.log_level,
        format=LOG_FORMAT,
        force=True,
    )
    logging.getLogger(__name__).debug("Logging configured (level=%s)", settings.log_level)
