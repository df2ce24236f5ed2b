"""Process-wide logging setup."""

from __future__ import annotations

import logging
from typing import Optional

from .config import Settings, settings as default_settings
from .request_context import attach_request_id_filter

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [request_id=%(request_id)s actor=%(actor_id)s] "
    "%(message)s"
)


def configure_logging(app_settings: Optional[Settings] = None) -> None:
    """Install the root handler and stamp request context on every record."""
    resolved = app_settings or default_settings
    level = logging.getLevelName(resolved.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    attach_request_id_filter()

    # SQL echo is controlled by the engine, keep the logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
