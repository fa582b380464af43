"""Logging configuration for the k3sctl package."""
import logging
import sys

from .config import Config

NOISY_LOGGERS = ("urllib3", "kubernetes", "requests")


def setup_logging(debug_mode: bool = False) -> None:
    """Configure root logging based on debug mode.

    Args:
        debug_mode: Log at DEBUG instead of the configured LOG_LEVEL
    """
    level = logging.DEBUG if debug_mode else getattr(logging, Config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format=Config.LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ],
        force=True,
    )
    # Disable debug logging for noisy libraries
    if not debug_mode:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
