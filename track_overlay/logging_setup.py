"""Logging setup driven by :class:`OverlaySettings`."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from track_overlay.config import OverlaySettings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def _open_log_file(path: Path, handlers: List[logging.Handler]) -> Optional[str]:
    """Append a file handler for ``path``, falling back to the working directory.

    Returns a warning to log once logging is up, or ``None``.
    """
    if not path.is_absolute():
        path = Path.cwd() / path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
        return None
    except OSError as exc:
        fallback = Path.cwd() / path.name
        try:
            handlers.append(logging.FileHandler(fallback, encoding="utf-8"))
        except OSError as fallback_exc:
            return f"Cannot open log file '{path}' or '{fallback}' ({fallback_exc}); file logging disabled"
        return f"Cannot open log file '{path}' ({exc}); logging to '{fallback}' instead"


def configure_logging(
    settings: OverlaySettings,
    *,
    verbose: bool = False,
    console: bool = True,
    name: str = "track_overlay",
) -> logging.Logger:
    """Install root handlers from ``settings`` and return the ``name`` logger.

    ``verbose`` forces DEBUG regardless of ``settings.log_level``.
    """
    level = logging.DEBUG if verbose else settings.log_level

    handlers: List[logging.Handler] = []
    warning = None
    if settings.log_file is not None:
        warning = _open_log_file(Path(settings.log_file), handlers)
    if console:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if warning:
        logger.warning(warning)
    return logger


__all__ = ["configure_logging"]
