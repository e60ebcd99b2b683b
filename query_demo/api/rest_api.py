"""
REST API endpoints for the Query Demo system.

This module provides FastAPI endpoints for searching the record collection
and downloading results as CSV attachments.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Depends, status
from fastapi.responses import FileResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from contextlib import asynccontextmanager

from .. import __version__
from ..config import get_config, SystemConfig
from ..errors import DownloadError, create_error_context, handle_error
from ..logging_config import log_export_operation
from ..models.dataset import get_default_records
from ..models.entities import Record
from ..query.download import DownloadManager
from ..query.engine import QueryEngine
from ..query.export import CSVExporter, ExportScope, to_csv, to_payload
from ..query.workflow import prepare_export

logger = logging.getLogger(__name__)


_query_engine: Optional[QueryEngine] = None
_download_manager: Optional[DownloadManager] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager."""
    logger.info("Query Demo API starting up")

    yield

    logger.info("Query Demo API shutting down")
    if _download_manager is not None:
        released = _download_manager.release_pending()
        if released:
            logger.info(f"Released {released} pending download handle(s)")


class SearchResponse(BaseModel):
    """Response model for a search."""
    query: str
    items: List[Record]
    explanation: str
    tips: List[str]
    total_count: int


app = FastAPI(
    title="Query Demo API",
    description="Search a fixed record collection and export results as CSV",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


def get_system_config() -> SystemConfig:
    """Get system configuration."""
    return get_config()


def get_query_engine() -> QueryEngine:
    """Get the shared query engine over the default collection."""
    global _query_engine
    if _query_engine is None:
        _query_engine = QueryEngine(get_default_records())
    return _query_engine


def get_download_manager(config: SystemConfig = Depends(get_system_config)) -> DownloadManager:
    """Get the shared download manager."""
    global _download_manager
    if _download_manager is None:
        _download_manager = DownloadManager(
            release_delay_seconds=config.export.release_delay_seconds
        )
    return _download_manager


def get_csv_exporter(
    config: SystemConfig = Depends(get_system_config),
    download_manager: DownloadManager = Depends(get_download_manager)
) -> CSVExporter:
    """Get a CSV exporter bound to the current configuration."""
    return CSVExporter(config=config.export, download_manager=download_manager)


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Query Demo API",
        "version": __version__,
        "description": "Search a fixed record collection and export results as CSV",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=Dict[str, Any])
async def health_check(engine: QueryEngine = Depends(get_query_engine)):
    """Basic health check endpoint."""
    return {"status": "healthy", "records": len(engine.records)}


@app.get("/search", response_model=SearchResponse)
async def search_records(
    q: str = Query(default="", description="Free-text query matched against name and category"),
    engine: QueryEngine = Depends(get_query_engine)
):
    """Search the record collection."""
    result = engine.search(q)
    return SearchResponse(
        query=q,
        items=list(result.items),
        explanation=result.explanation,
        tips=list(result.tips),
        total_count=result.total_count
    )


@app.get("/export")
async def export_records(
    q: str = Query(default="", description="Query whose results are exported"),
    scope: ExportScope = Query(default=ExportScope.FILTERED, description="filtered or all"),
    engine: QueryEngine = Depends(get_query_engine),
    exporter: CSVExporter = Depends(get_csv_exporter)
):
    """
    Download results as a CSV attachment.

    The payload lives in a download handle that is released by a
    background task once the response has been sent, after the
    configured delay.
    """
    request = prepare_export(engine, exporter, q, scope)
    manager = exporter.download_manager

    try:
        payload = to_payload(to_csv(request.rows, request.columns))
        handle = manager.acquire(payload, request.filename)
    except DownloadError as e:
        error_info = handle_error(e, create_error_context("export_csv", filename=request.filename, query=q))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_info.user_notice
        )

    log_export_operation(
        logger, request.filename, len(request.rows), len(request.columns),
        byte_count=handle.size, scope=scope.value
    )

    return FileResponse(
        handle.path,
        media_type=handle.media_type,
        filename=handle.filename,
        background=BackgroundTask(manager.schedule_release, handle)
    )
