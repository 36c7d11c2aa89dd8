"""Logging setup for prescient."""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure the ``prescient`` logger with Rich console output.

    A size-rotated log file is added when ``config.file`` is set.
    """
    if config is None:
        config = LoggingConfig()

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
    ]

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        handlers.append(file_handler)

    package_logger = logging.getLogger("prescient")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        package_logger.addHandler(handler)

    package_logger.setLevel(getattr(logging, config.level))
    package_logger.propagate = False
