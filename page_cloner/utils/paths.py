"""
URL utilities for the page cloner.

Provides reference resolution, MIME type detection and data URI encoding.
"""

import base64
import mimetypes
from typing import Optional
from urllib.parse import urljoin, urlparse

from .constants import PASSTHROUGH_SCHEMES


def resolve_url(ref: str, base: str) -> str:
    """
    Resolve a reference found in a document against its base URL.

    Embedded data and blob handles pass through untouched, protocol-relative
    references are pinned to https, and anything else is joined with the
    base. Empty or malformed input is returned unchanged.

    Args:
        ref: Reference as written in the document
        base: Absolute URL the reference is relative to

    Returns:
        Absolute URL, or the reference itself when it cannot be resolved
    """
    if not isinstance(ref, str) or not ref.strip():
        return ref

    stripped = ref.strip()

    if stripped.lower().startswith(PASSTHROUGH_SCHEMES):
        return ref

    if stripped.startswith('//'):
        return f"https:{stripped}"

    try:
        parsed = urlparse(stripped)
        if parsed.scheme and parsed.netloc:
            parsed.port
            return stripped

        resolved = urljoin(base, stripped)
        # urljoin is lazy about netloc validation; force it here
        urlparse(resolved).port
    except (ValueError, TypeError):
        return ref

    return resolved


def is_inlined(ref: Optional[str]) -> bool:
    """Check whether a reference already embeds its content."""
    return bool(ref) and ref.strip().lower().startswith(PASSTHROUGH_SCHEMES)


def guess_mime_type(url: str, content_type: Optional[str] = None) -> str:
    """
    Determine the MIME type of a fetched resource.

    Args:
        url: URL the resource was fetched from
        content_type: Content-Type header value, if any

    Returns:
        MIME type string, ``application/octet-stream`` when unknown
    """
    if content_type:
        mime = content_type.split(';', 1)[0].strip().lower()
        if mime and mime not in ('application/octet-stream', 'binary/octet-stream'):
            return mime

    guessed, _ = mimetypes.guess_type(urlparse(url).path)
    return guessed or 'application/octet-stream'


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode binary content as a base64 data URI."""
    encoded = base64.b64encode(data).decode('ascii')
    return f"data:{mime_type};base64,{encoded}"


def validate_url(url: str) -> str:
    """
    Validate and normalize a user supplied URL.

    Args:
        url: URL string to validate

    Returns:
        Normalized URL string

    Raises:
        ValueError: If URL is empty or invalid
    """
    url = (url or '').strip()
    if not url:
        raise ValueError("Please enter a valid URL")

    # Add protocol if missing
    if not url.startswith(('http://', 'https://')):
        url = 'https://' + url

    parsed = urlparse(url)
    if not parsed.netloc:
        raise ValueError(f"Invalid URL: {url}")

    return url
