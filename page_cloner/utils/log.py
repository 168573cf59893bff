"""
Logging utilities for the page cloner.

Provides colorful CLI logging using the rich library.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Global console instance
console = Console(stderr=True)

# Logger instances cache
_loggers: dict = {}

ROOT_LOGGER = "page_cloner"


def setup_logger(
    name: str = ROOT_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up and configure a logger with rich formatting.

    Args:
        name: Logger name
        level: Logging level (default: INFO)
        log_file: Optional file path to write logs

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers.clear()

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    _loggers[name] = logger
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a component logger.

    Component loggers are children of the package logger, so they pick up
    whatever handlers ``setup_logger`` installed on it.

    Args:
        name: Component name (e.g. ``"fetcher"``)

    Returns:
        Logger instance
    """
    full_name = name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}"
    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)
    return _loggers[full_name]


def print_status(message: str, style: str = "bold blue") -> None:
    """
    Print a styled status message.

    Args:
        message: Message to print
        style: Rich style string
    """
    console.print(f"[{style}]{message}[/{style}]")


def print_error(message: str) -> None:
    """Print an error message."""
    print_status(f"❌ {message}", "bold red")


def print_success(message: str) -> None:
    """Print a success message."""
    print_status(f"✅ {message}", "bold green")


def print_info(message: str) -> None:
    """Print an info message."""
    print_status(f"ℹ️ {message}", "bold cyan")
