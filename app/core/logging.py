"""Logging setup.

Development gets a readable one-line format; every other environment gets
``key=value`` lines so that log shippers can pick fields apart. Code logs
with ``logging.getLogger(__name__)`` and may attach any of ``LOG_FIELDS``
through ``extra``.
"""

import logging
import sys
from typing import Any

from app.core.config import settings

LOG_FIELDS = ("action", "actor", "entity", "link_id", "questionnaire_id", "user_id")

DEV_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "passlib": logging.ERROR,
    "multipart": logging.WARNING,
}


class KeyValueFormatter(logging.Formatter):
    """One ``key=value`` line per record."""

    def format(self, record: logging.LogRecord) -> str:
        pairs: list[tuple[str, Any]] = [
            ("ts", self.formatTime(record, self.datefmt)),
            ("level", record.levelname),
            ("logger", record.name),
        ]
        pairs.extend(
            (name, getattr(record, name)) for name in LOG_FIELDS if hasattr(record, name)
        )
        pairs.append(("msg", record.getMessage()))
        if record.exc_info:
            pairs.append(("exc", self.formatException(record.exc_info)))
        return " ".join(f"{key}={value}" for key, value in pairs)


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(DEV_FORMAT) if settings.is_dev else KeyValueFormatter()
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
