"""
CSV export for search results.

This module renders row collections as spreadsheet-friendly CSV text
(CRLF line endings, UTF-8 with a byte-order mark), builds the timestamped
download filename, and hands the payload to a download mechanism.
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from ..config import ExportConfig
from ..errors import DownloadError
from ..logging_config import log_error_with_context, log_export_operation
from .download import CSV_MEDIA_TYPE, DownloadHandle, DownloadManager, SaveToDirectory


BOM = "\ufeff"
LINE_TERMINATOR = "\r\n"
SEPARATOR = ","
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

Row = Union[Mapping[str, Any], BaseModel]


class ExportScope(Enum):
    """Which rows an export covers."""
    FILTERED = "filtered"
    ALL = "all"


@dataclass(frozen=True)
class ExportRequest:
    """Rows, their column order and the filename to deliver them under."""
    filename: str
    rows: Sequence[Row]
    columns: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class DownloadReceipt:
    """Outcome of one export hand-off."""
    filename: str
    row_count: int
    column_count: int
    byte_count: int
    destination: Optional[Path] = None


def _needs_quotes(text: str) -> bool:
    if any(ch in text for ch in ('"', ',', '\r', '\n')):
        return True
    # Leading or trailing whitespace is quoted too, so spreadsheets keep it
    return text != text.strip()


def to_cell_text(value: Any) -> str:
    """Convert a cell value to text; ``None`` becomes the empty string."""
    if value is None:
        return ""
    return str(value)


def escape_csv_value(value: Any) -> str:
    """
    Escape one CSV field.

    Embedded double quotes are doubled; the field is wrapped in double
    quotes when it contains a quote, comma, CR, LF, or has leading or
    trailing whitespace.
    """
    text = to_cell_text(value)
    escaped = text.replace('"', '""')
    return f'"{escaped}"' if _needs_quotes(text) else escaped


def _as_mapping(row: Row) -> Mapping[str, Any]:
    if isinstance(row, BaseModel):
        return row.model_dump()
    return row


def resolve_columns(rows: Sequence[Row], columns: Optional[Sequence[str]]) -> List[str]:
    """Explicit columns win; otherwise the first row's key order; otherwise none."""
    if columns:
        return list(columns)
    if rows:
        return list(_as_mapping(rows[0]).keys())
    return []


def to_csv(rows: Sequence[Row], columns: Optional[Sequence[str]] = None) -> str:
    """
    Render rows as CSV text.

    Args:
        rows: Mappings (or pydantic models) to render, in order
        columns: Column names in output order; derived from the first row if empty

    Returns:
        Header line and one line per row joined with CRLF, without a
        trailing line terminator
    """
    cols = resolve_columns(rows, columns)

    lines = [SEPARATOR.join(escape_csv_value(col) for col in cols)]
    for row in rows:
        data = _as_mapping(row)
        lines.append(SEPARATOR.join(escape_csv_value(data.get(col)) for col in cols))

    return LINE_TERMINATOR.join(lines)


def to_payload(csv_text: str) -> bytes:
    """Prefix the BOM and encode as UTF-8."""
    return (BOM + csv_text).encode("utf-8")


def format_timestamp(now: Optional[datetime] = None) -> str:
    """Local time as ``YYYYMMDD-HHMMSS``."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def build_filename(
    prefix: str,
    query: str,
    now: Optional[datetime] = None,
    placeholder: str = "empty"
) -> str:
    """
    Build ``<prefix>_<query-or-placeholder>_<timestamp>.csv``.

    An empty query is replaced by ``placeholder`` so no segment is blank.
    The query text is otherwise used as typed.
    """
    return f"{prefix}_{query or placeholder}_{format_timestamp(now)}.csv"


class CSVExporter:
    """
    CSV exporter for search results and the full record collection.

    Rendering is pure; ``export_csv`` is the only method with a side
    effect, the download hand-off.
    """

    def __init__(
        self,
        config: Optional[ExportConfig] = None,
        download_manager: Optional[DownloadManager] = None,
        mechanism: Optional[Callable[[DownloadHandle], Any]] = None
    ):
        """Initialize the exporter from export configuration."""
        self.config = config or ExportConfig()
        self.download_manager = download_manager or DownloadManager(
            release_delay_seconds=self.config.release_delay_seconds
        )
        self.mechanism = mechanism or SaveToDirectory(self.config.download_dir)
        self.logger = logging.getLogger(__name__)

    def to_csv(self, rows: Sequence[Row], columns: Optional[Sequence[str]] = None) -> str:
        return to_csv(rows, columns)

    def to_payload(self, rows: Sequence[Row], columns: Optional[Sequence[str]] = None) -> bytes:
        return to_payload(to_csv(rows, columns))

    def filename_for_query(self, query: str, now: Optional[datetime] = None) -> str:
        """Filename for an export of the current result set."""
        return build_filename(
            self.config.filename_prefix, query, now,
            placeholder=self.config.empty_query_placeholder
        )

    def filename_for_all(self, now: Optional[datetime] = None) -> str:
        """Filename for an export of the whole collection."""
        return build_filename(self.config.filename_prefix, self.config.all_rows_label, now)

    def export_csv(
        self,
        filename: str,
        rows: Sequence[Row],
        columns: Optional[Sequence[str]] = None
    ) -> DownloadReceipt:
        """
        Render rows and deliver them as a named download.

        Args:
            filename: Name the file is delivered under
            rows: Rows to export
            columns: Column order; derived from the first row if empty

        Returns:
            DownloadReceipt describing what was delivered

        Raises:
            DownloadError: If the host refuses the download
        """
        cols = resolve_columns(rows, columns)
        payload = to_payload(to_csv(rows, cols))

        try:
            destination = self.download_manager.deliver(
                payload, filename, self.mechanism, media_type=CSV_MEDIA_TYPE
            )
        except DownloadError as e:
            log_export_operation(self.logger, filename, len(rows), len(cols), error=str(e))
            raise
        except Exception as e:
            log_error_with_context(self.logger, e, "export_csv", export_filename=filename)
            raise

        log_export_operation(self.logger, filename, len(rows), len(cols), byte_count=len(payload))

        return DownloadReceipt(
            filename=filename,
            row_count=len(rows),
            column_count=len(cols),
            byte_count=len(payload),
            destination=destination if isinstance(destination, Path) else None
        )

    def export_request(self, request: ExportRequest) -> DownloadReceipt:
        """Consume an ExportRequest."""
        return self.export_csv(request.filename, request.rows, request.columns)
