"""
Command-line interface for the Query Demo system.

This module provides CLI commands for searching the record collection,
exporting results to CSV, and serving the REST API.
"""

import click
import json
import sys
import time
from .config import SystemConfig, load_config_from_file
from .errors import ConfigurationError, DownloadError, create_error_context, handle_error
from .logging_config import get_logger, log_performance_metrics, setup_logging
from .models.dataset import get_default_records
from .query.engine import QueryEngine
from .query.export import CSVExporter, ExportScope
from .query.workflow import prepare_export


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Query Demo - search records and export results to CSV."""
    ctx.ensure_object(dict)

    try:
        if config:
            system_config = load_config_from_file(config)
        else:
            system_config = SystemConfig.from_env()
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(2)

    if verbose:
        system_config.logging.level = "DEBUG"

    setup_logging(system_config.logging)

    ctx.obj['config'] = system_config
    ctx.obj['engine'] = QueryEngine(get_default_records())


@cli.command()
@click.argument('query', default='')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def search(ctx, query, output_format):
    """Search records by name or category."""
    engine = ctx.obj['engine']
    result = engine.search(query)

    if output_format == 'json':
        click.echo(json.dumps({"query": query, **result.to_dict()}, indent=2))
        return

    click.echo(f"=== Results ({result.total_count}) ===")
    if not result.items:
        click.echo('No results. Try searching for "analytics".')
    else:
        click.echo(f"{'ID':>4}  {'Name':<24} {'Category':<12} {'Score':>5}")
        for record in result.items:
            click.echo(f"{record.id!s:>4}  {record.name:<24} {record.category:<12} {record.score!s:>5}")

    click.echo("\n=== Explanation ===")
    click.echo(result.explanation)
    for tip in result.tips:
        click.echo(f"  - {tip}")


@cli.command()
@click.argument('query', default='')
@click.option('--all', 'export_all', is_flag=True,
              help='Export the whole collection instead of the results for QUERY')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False),
              help='Directory the CSV is saved to (default: configured download dir)')
@click.pass_context
def export(ctx, query, export_all, output_dir):
    """Export search results (or everything) to a CSV file."""
    config = ctx.obj['config']
    engine = ctx.obj['engine']

    if output_dir:
        config.export.download_dir = output_dir

    exporter = CSVExporter(config=config.export)
    scope = ExportScope.ALL if export_all else ExportScope.FILTERED
    request = prepare_export(engine, exporter, query, scope)

    start_time = time.time()
    try:
        receipt = exporter.export_request(request)
    except DownloadError as e:
        error_info = handle_error(e, create_error_context("export_csv", filename=request.filename, query=query))
        click.echo(f"Export failed: {error_info.user_notice}", err=True)
        sys.exit(1)
    finally:
        # Daemon timers do not outlive the process
        exporter.download_manager.release_pending(wait=True)

    log_performance_metrics(
        get_logger(__name__), "export_csv", time.time() - start_time,
        row_count=receipt.row_count, scope=scope.value
    )
    click.echo(f"Exported {receipt.row_count} row(s) to {receipt.destination}")


@cli.command()
@click.option('--host', help='Host to bind to (default: configured host)')
@click.option('--port', type=int, help='Port to bind to (default: configured port)')
@click.option('--reload', is_flag=True, help='Enable auto-reload')
@click.pass_context
def serve(ctx, host, port, reload):
    """Run the REST API server."""
    from .config import set_config
    from .server import run_server

    set_config(ctx.obj['config'])
    run_server(host=host, port=port, reload=reload)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
