"""Console output and logging for the CLI and the MCP server.

``console`` renders CLI tables and panels on stdout. Log records always
go to stderr so that ``toolgate serve`` keeps stdout for the protocol.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()
_log_console = Console(stderr=True)

# The MCP SDK logs every request at INFO; only show that when verbose.
_CHATTY_LOGGERS = ("mcp",)


def _normalize_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def setup_logging(level: str | int = logging.INFO, verbose: bool = False) -> logging.Logger:
    """Route all logging through one Rich handler on stderr.

    Args:
        level: Level name or number for toolgate's own loggers.
        verbose: Force DEBUG and let the MCP SDK's request logging through.

    Returns:
        The ``toolgate`` logger.
    """
    numeric_level = logging.DEBUG if verbose else _normalize_level(level)

    handler = RichHandler(
        console=_log_console,
        markup=False,
        rich_tracebacks=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(
            numeric_level if verbose else max(numeric_level, logging.WARNING)
        )

    logger = logging.getLogger("toolgate")
    logger.setLevel(numeric_level)
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or "toolgate")


__all__ = ["console", "get_logger", "setup_logging"]
