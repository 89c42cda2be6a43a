"""Local store commands for MoneyHub CLI.

The store holds linked connections and locally recorded transfers. These
commands create its tables and report what it contains.
"""

import logging
from pathlib import Path

import duckdb
import typer

from moneyhub.config import get_settings
from moneyhub.stores.duckdb_store import DuckDBStore

app = typer.Typer(help="Local store commands")
logger = logging.getLogger(__name__)


def _resolve_database(database: Path | None) -> Path:
    if database is not None:
        logger.info(f"Using specified database: {database}")
        return database
    try:
        path = get_settings().database.path
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    logger.info(f"Using database from profile: {path}")
    return path


@app.command("init")
def init_store(
    database: Path | None = typer.Option(
        None,
        "--database",
        "-d",
        help="Path to DuckDB database file (default: profile config)",
    ),
) -> None:
    """Create the linked connection and transfer tables."""
    path = _resolve_database(database)
    try:
        DuckDBStore(path).create_tables()
    except duckdb.Error as e:
        logger.error(f"❌ Failed to initialize store: {e}")
        raise typer.Exit(1) from e
    logger.info("✅ Store initialized")


@app.command("status")
def store_status(
    database: Path | None = typer.Option(
        None,
        "--database",
        "-d",
        help="Path to DuckDB database file (default: profile config)",
    ),
) -> None:
    """Show row counts for the store tables."""
    path = _resolve_database(database)
    if not path.exists():
        logger.error(f"❌ Database file not found: {path}")
        logger.info("💡 Run 'moneyhub db init' to create it")
        raise typer.Exit(1)

    try:
        status = DuckDBStore(path, read_only=True).get_status()
    except duckdb.Error as e:
        logger.error(f"❌ Failed to read store: {e}")
        raise typer.Exit(1) from e

    for table, count in status.items():
        typer.echo(f"{table}: {count} rows")
