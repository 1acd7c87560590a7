from __future__ import annotations

import json
import logging

from app.shopgate.core.config import settings

_QUIET_LOGGERS = ("sqlalchemy.engine", "passlib")


def configure_logging(level: str | None = None) -> None:
    """One JSON document per line on the root handler; level comes from LOG_LEVEL."""
    resolved = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, resolved, logging.INFO), format="%(message)s")
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_json(logger: logging.Logger, payload: dict, level: int = logging.INFO) -> None:
    if not logger.isEnabledFor(level):
        return
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str, sort_keys=True))
