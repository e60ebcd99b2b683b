"""
REST API for the Query Demo system.

This package exposes search and CSV download endpoints over HTTP.
"""

from .rest_api import app

__all__ = ["app"]
