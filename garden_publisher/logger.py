"""Logging setup with rich console output.

Library modules only call ``logging.getLogger(__name__)``; the CLI calls
``setup_logging`` once so warnings about skipped links, failed queries and
the like reach the user.

Usage:
    from garden_publisher.logger import setup_logging

    setup_logging("INFO", log_file="publish.log")
    logging.getLogger(__name__).warning("Could not resolve [[Missing Note]]")
"""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

console = Console(stderr=True)


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    return handler


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger once, at the CLI entry point.

    Args:
        level: Default level; $LOG_LEVEL overrides it
        log_file: Optional file that receives a plain-text copy of the log
    """
    level = os.getenv("LOG_LEVEL", level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_rich_handler())

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root_logger.addHandler(file_handler)


def success(message: str) -> None:
    """Print a success line with a green check mark."""
    console.print(f"[green]✓[/green] {escape(message)}", markup=True, highlight=False)
