"""
Server runner for the Query Demo REST API.

This module provides a simple way to start the FastAPI server with proper configuration.
"""

import uvicorn
from typing import Optional

from .config import get_config
from .logging_config import get_logger, setup_logging


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: bool = False
):
    """
    Run the FastAPI server.

    Args:
        host: Host to bind to (defaults to the configured host)
        port: Port to bind to (defaults to the configured port)
        reload: Enable auto-reload for development
    """
    config = get_config()
    setup_logging(config.logging)

    host = host or config.api.host
    port = port or config.api.port

    logger = get_logger(__name__)
    logger.info(f"Starting Query Demo API server on {host}:{port}")

    uvicorn.run(
        "query_demo.api.rest_api:app",
        host=host,
        port=port,
        reload=reload,
        log_level=config.logging.level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Query Demo API Server")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    run_server(host=args.host, port=args.port, reload=args.reload)
