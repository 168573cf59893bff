"""
Page Cloner - turn a live web page into one self-contained HTML file.

Stylesheets, scripts, images and icons are fetched (through relay services
when direct access is blocked) and inlined so the page renders offline.
"""

__version__ = "1.0.0"
__author__ = "Page Cloner Team"

from .snapshot import clone, CloneFailure, Fetcher, ProxyEndpoint

__all__ = ["clone", "CloneFailure", "Fetcher", "ProxyEndpoint"]
