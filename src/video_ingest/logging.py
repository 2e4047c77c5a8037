"""
video_ingest.logging - Centralized logging configuration.

Provides a simple logging setup with optional verbose mode for debugging.
"""

import logging

from rich.logging import RichHandler

logger = logging.getLogger("video_ingest")


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the video_ingest package.

    Attaches a rich handler to the package logger only, leaving the host
    application's root logger alone.

    Args:
        verbose: If True, enable DEBUG level logging; otherwise INFO level
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(rich_tracebacks=True, show_path=verbose))
