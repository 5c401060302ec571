"""Logging setup."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stderr rich handler to the package logger.

    Output goes to stderr so the MCP stdio transport stays clean.
    """
    logger = logging.getLogger("codepair")
    logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger
