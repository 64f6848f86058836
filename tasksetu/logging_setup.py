"""
Logging setup for the API process.
"""

import logging
from pathlib import Path

from rich.logging import RichHandler

_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "urllib3")

def setup_logging(level: str | int = logging.INFO, log_file: str | Path | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: logging level name or number
        log_file: optional path, gets a plain-text handler at DEBUG
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(min(level, logging.DEBUG) if log_file else level)
    root_logger.handlers.clear()

    console_handler = RichHandler(show_time=False, show_path=False, rich_tracebacks=True)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
