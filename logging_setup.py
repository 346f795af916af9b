"""Logging setup for the tracker core.

Modules log through ``logging.getLogger(__name__)``; this installs the
handlers once at process start (CLI entry point, or an embedding service).
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from config import settings


FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Optional[Union[str, int]] = None,
    log_file: Optional[Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure root logging with a rich console handler and optional file.

    Args:
        level: Log level name or number (defaults to settings.log_level)
        log_file: File to append plain-text records to (defaults to settings.log_file)
        console: Rich console to render to (stderr by default)

    Returns:
        The root logger
    """
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    log_file = log_file or settings.get_log_path()

    root = logging.getLogger()
    root.setLevel(level)

    # Re-running replaces our handlers instead of stacking them
    for handler in list(root.handlers):
        if getattr(handler, "_tracker_handler", False):
            root.removeHandler(handler)

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    console_handler._tracker_handler = True
    root.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        file_handler._tracker_handler = True
        root.addHandler(file_handler)

    logging.getLogger(__name__).debug("Logging initialized at %s", logging.getLevelName(level))
    return root
