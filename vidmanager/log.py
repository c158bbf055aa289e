"""Category-gated logging shared by the engine and the server."""
from __future__ import annotations

import logging
import os

logger = logging.getLogger("vidmanager")


def log_enabled(cat: str) -> bool:
    base = os.environ.get("LOG_ALL", "1")
    base_on = str(base).lower() not in ("0", "false", "no")
    specific = os.environ.get(f"LOG_{cat.upper()}")
    if specific is not None:
        return str(specific).lower() in ("1", "true", "yes")
    return base_on


def log(cat: str, msg: str) -> None:
    """Emit an application log line for a given category.

    Every line goes through the ``vidmanager`` logger so uvicorn and tee'd
    logs pick it up. ``LOG_ALL=0`` silences everything; ``LOG_<CAT>``
    overrides a single category either way.
    """
    if not log_enabled(cat):
        return
    logger.info("%s", msg)


def warn(cat: str, msg: str) -> None:
    if not log_enabled(cat):
        return
    logger.warning("%s", msg)
