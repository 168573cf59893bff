"""
Reference rewriting helpers for CSS text and srcset attributes.
"""

import re
from typing import List, Tuple

from ..utils.paths import resolve_url, is_inlined


# CSS url() pattern; groups hold a double-quoted, single-quoted or bare reference
CSS_URL_PATTERN = re.compile(
    r'url\(\s*(?:"([^"]*)"|\'([^\']*)\'|([^)"\'\s]*))\s*\)',
    re.IGNORECASE
)


def rewrite_css_urls(css: str, base_url: str) -> str:
    """
    Absolutize every url() reference in a CSS text.

    Embedded data references and empty references are left as written;
    the original quoting is kept.

    Args:
        css: CSS content
        base_url: URL the references are relative to

    Returns:
        CSS with absolute url() references
    """
    def replace_url(match):
        if match.group(1) is not None:
            quote, ref = '"', match.group(1)
        elif match.group(2) is not None:
            quote, ref = "'", match.group(2)
        else:
            quote, ref = '', match.group(3)
        ref = ref.strip()

        if not ref or is_inlined(ref):
            return match.group(0)

        return f"url({quote}{resolve_url(ref, base_url)}{quote})"

    return CSS_URL_PATTERN.sub(replace_url, css)


def parse_srcset(srcset: str) -> List[Tuple[str, str]]:
    """
    Split a srcset attribute into (url, descriptor) candidates.

    A candidate URL runs up to the next whitespace, so commas inside
    data URIs do not split it; trailing commas end a bare candidate.

    Args:
        srcset: Original srcset value

    Returns:
        List of candidates; descriptor is '' when absent
    """
    candidates = []
    pos, length = 0, len(srcset)

    while pos < length:
        while pos < length and (srcset[pos].isspace() or srcset[pos] == ','):
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and not srcset[pos].isspace():
            pos += 1
        url = srcset[start:pos]

        descriptor = ''
        if url.endswith(','):
            url = url.rstrip(',')
        else:
            end = srcset.find(',', pos)
            if end == -1:
                end = length
            descriptor = srcset[pos:end].strip()
            pos = end + 1

        candidates.append((url, descriptor))

    return candidates


def format_srcset(candidates: List[Tuple[str, str]]) -> str:
    """Join (url, descriptor) candidates back into a srcset value."""
    return ', '.join(
        f"{url} {descriptor}" if descriptor else url
        for url, descriptor in candidates
    )
