"""
Data models for the Query Demo system.

This package provides the Pydantic record model and the default
record collection the query engine searches.
"""

from .entities import Record
from .dataset import DEFAULT_RECORDS, get_default_records

__all__ = [
    "Record",
    "DEFAULT_RECORDS",
    "get_default_records",
]
