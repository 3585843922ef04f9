"""
Logging setup for schemasync.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig


def setup_logging(
    config: Optional[LoggingConfig] = None,
    debug: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the ``schemasync`` logger.

    Console output goes through rich; a rotating file handler is added
    when ``config.file`` is set. Calling this again replaces the handlers.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger("schemasync")
    logger.setLevel(logging.DEBUG if debug else config.level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
