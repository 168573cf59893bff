"""
Snapshot module for page cloning.

Contains the relay-aware fetcher and the assembler that inlines page assets.
"""

from .fetcher import (
    Fetcher,
    ProxyEndpoint,
    EnvelopeKind,
    BinaryContent,
    FetchError,
    RetryExhaustedError,
    ProxyExhaustedError,
    DEFAULT_PROXY_ENDPOINTS,
    parse_endpoint,
)
from .assembler import SnapshotAssembler, CloneFailure, clone

__all__ = [
    "Fetcher",
    "ProxyEndpoint",
    "EnvelopeKind",
    "BinaryContent",
    "FetchError",
    "RetryExhaustedError",
    "ProxyExhaustedError",
    "DEFAULT_PROXY_ENDPOINTS",
    "parse_endpoint",
    "SnapshotAssembler",
    "CloneFailure",
    "clone",
]
