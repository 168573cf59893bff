"""
Utility modules for the page cloner.

Contains logging, URL handling utilities, and constants.
"""

from .log import setup_logger, get_logger
from .paths import resolve_url, guess_mime_type, to_data_uri, validate_url
from .constants import (
    DEFAULT_USER_AGENT,
    DEFAULT_TIMEOUT,
    DEFAULT_ATTEMPTS,
    DEFAULT_BACKOFF_BASE,
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_OUTPUT_FILENAME,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "resolve_url",
    "guess_mime_type",
    "to_data_uri",
    "validate_url",
    "DEFAULT_USER_AGENT",
    "DEFAULT_TIMEOUT",
    "DEFAULT_ATTEMPTS",
    "DEFAULT_BACKOFF_BASE",
    "DEFAULT_BACKOFF_FACTOR",
    "DEFAULT_OUTPUT_FILENAME",
]
