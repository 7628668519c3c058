"""Console logging for the session service."""
from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
# Third-party loggers that drown the session log at DEBUG.
NOISY_LOGGERS = ("urllib3", "httpx", "python_multipart")


def resolve_level(level: int | str) -> int:
    """Numeric level for ``level``; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_console_logging(level: int | str = logging.DEBUG) -> None:
    """
    Call once at app start. Prints session logs to console; calling it
    again only changes the level.
    """
    root = logging.getLogger()
    root.setLevel(resolve_level(level))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if root.handlers:
        # already configured (avoid duplicates)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
