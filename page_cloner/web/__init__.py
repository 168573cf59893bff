"""
Web module for the page cloner.

Provides a Flask-based form for cloning a page into a downloadable file.
"""

from .app import create_app

__all__ = ["create_app"]
