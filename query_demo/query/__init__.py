"""
Query engine and CSV export.

This package contains the search over the record collection and the
export of result rows to CSV downloads.
"""

from .engine import QueryEngine, QueryResult, search
from .export import CSVExporter, DownloadReceipt, ExportRequest, ExportScope, to_csv, build_filename
from .download import DownloadHandle, DownloadManager, SaveToDirectory

__all__ = [
    'QueryEngine', 'QueryResult', 'search',
    'CSVExporter', 'DownloadReceipt', 'ExportRequest', 'ExportScope', 'to_csv', 'build_filename',
    'DownloadHandle', 'DownloadManager', 'SaveToDirectory',
]
