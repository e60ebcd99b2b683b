"""
Search-then-export flow shared by the CLI and the REST API.
"""

from datetime import datetime
from typing import Optional, Sequence

from .engine import QueryEngine
from .export import CSVExporter, ExportRequest, ExportScope


def prepare_export(
    engine: QueryEngine,
    exporter: CSVExporter,
    query: str,
    scope: ExportScope = ExportScope.FILTERED,
    columns: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None
) -> ExportRequest:
    """
    Build the export for what the user is looking at.

    ``FILTERED`` exports the items currently shown for ``query``;
    ``ALL`` exports the engine's whole collection.
    """
    cols = tuple(columns if columns is not None else exporter.config.columns)

    if scope is ExportScope.ALL:
        return ExportRequest(
            filename=exporter.filename_for_all(now),
            rows=engine.records,
            columns=cols
        )

    result = engine.search(query)
    return ExportRequest(
        filename=exporter.filename_for_query(query, now),
        rows=result.items,
        columns=cols
    )
