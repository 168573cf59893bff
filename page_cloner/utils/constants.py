"""
Shared constants for the page cloner.

Contains common configuration values used across multiple modules.
"""

# Default user agent string for all HTTP requests
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Timeout for a single request attempt in seconds
DEFAULT_TIMEOUT = 15

# Attempts made by the retrying fetch primitive
DEFAULT_ATTEMPTS = 3

# Backoff between attempts: base * factor ** attempt_index seconds
DEFAULT_BACKOFF_BASE = 1.0
DEFAULT_BACKOFF_FACTOR = 2.0

# File name offered for the cloned page
DEFAULT_OUTPUT_FILENAME = "cloned-page.html"

# Permissions granted to every iframe in a snapshot
IFRAME_SANDBOX = "allow-scripts allow-same-origin allow-popups allow-forms"

# Schemes that already carry their content (or a local handle) and are never resolved
PASSTHROUGH_SCHEMES = ("data:", "blob:")
