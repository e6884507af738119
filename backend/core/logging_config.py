"""Central logging configuration for the loan servicing backend."""

import logging


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
NOISY_LOGGERS = ("google.auth", "google.api_core", "urllib3")


def setup_logging(level: int = logging.INFO, debug: bool = False) -> None:
    """Configure root logging; safe to call again to change the level.

    The handler is installed once. Levels are reapplied on every call, so a
    later `debug=True` turns on DEBUG output and lets Google client loggers
    through.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(logging.DEBUG if debug else level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if debug else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Create or retrieve a module logger."""
    return logging.getLogger(name)
