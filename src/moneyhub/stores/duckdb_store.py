"""DuckDB-backed store for linked connections and transfer records.

The aggregation services only read from this store. The write helpers exist so
the CLI and tests can seed a local database.
"""

import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import duckdb

from ..schemas import LinkedConnection, TransferRecord

logger = logging.getLogger(__name__)

CONNECTIONS_TABLE = "linked_connections"
TRANSFERS_TABLE = "transfers"

_CREATE_CONNECTIONS = f"""
    CREATE TABLE IF NOT EXISTS {CONNECTIONS_TABLE} (
        connection_id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        access_token VARCHAR NOT NULL,
        shareable_id VARCHAR NOT NULL,
        created_at TIMESTAMP DEFAULT current_timestamp
    )
"""

_CREATE_TRANSFERS = f"""
    CREATE TABLE IF NOT EXISTS {TRANSFERS_TABLE} (
        transfer_id VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        amount DECIMAL(18, 2) NOT NULL,
        channel VARCHAR NOT NULL,
        category VARCHAR NOT NULL,
        sender_connection_id VARCHAR NOT NULL,
        receiver_connection_id VARCHAR,
        email VARCHAR,
        created_at TIMESTAMP NOT NULL
    )
"""


class DuckDBStore:
    """Linked-connection and transfer store on a DuckDB file.

    Implements both ``ConnectionStore`` and ``TransferStore``. Each call opens
    its own connection so the store can be shared by concurrent fetches.
    """

    def __init__(self, database_path: Path, read_only: bool = False):
        self.database_path = database_path
        self.read_only = read_only

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.database_path), read_only=self.read_only)  # type: ignore[misc]

    def create_tables(self) -> None:
        """Create the store tables if they do not exist yet."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(_CREATE_CONNECTIONS)
            conn.execute(_CREATE_TRANSFERS)
        logger.info(f"Store tables ready in {self.database_path}")

    def add_connection(self, connection: LinkedConnection) -> None:
        """Insert or replace one linked connection."""
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO {CONNECTIONS_TABLE}
                (connection_id, user_id, access_token, shareable_id, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,  # noqa: S608  # table name is a module constant
                [
                    connection.connection_id,
                    connection.user_id,
                    connection.access_token,
                    connection.shareable_id,
                    connection.created_at or datetime.now(),
                ],
            )

    def add_transfer(self, transfer: TransferRecord) -> None:
        """Insert or replace one transfer record."""
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO {TRANSFERS_TABLE}
                (transfer_id, name, amount, channel, category,
                 sender_connection_id, receiver_connection_id, email, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,  # noqa: S608  # table name is a module constant
                [
                    transfer.id,
                    transfer.name,
                    transfer.amount,
                    transfer.channel,
                    transfer.category,
                    transfer.sender_connection_id,
                    transfer.receiver_connection_id,
                    transfer.email,
                    transfer.created_at,
                ],
            )

    def list_connections(self, user_id: str) -> list[LinkedConnection]:
        """Return the user's connections, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT connection_id, user_id, access_token, shareable_id, created_at
                FROM {CONNECTIONS_TABLE}
                WHERE user_id = ?
                ORDER BY created_at, connection_id
                """,  # noqa: S608  # table name is a module constant
                [user_id],
            ).fetchall()

        return [_connection_from_row(row) for row in rows]

    def get_connection(self, connection_id: str) -> LinkedConnection | None:
        """Return one connection by ID, or None."""
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT connection_id, user_id, access_token, shareable_id, created_at
                FROM {CONNECTIONS_TABLE}
                WHERE connection_id = ?
                """,  # noqa: S608  # table name is a module constant
                [connection_id],
            ).fetchone()

        return _connection_from_row(row) if row else None

    def list_transfers(self, connection_id: str) -> list[TransferRecord]:
        """Return transfers the connection sent or received, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT transfer_id, name, amount, channel, category,
                       sender_connection_id, receiver_connection_id, email, created_at
                FROM {TRANSFERS_TABLE}
                WHERE sender_connection_id = ? OR receiver_connection_id = ?
                ORDER BY created_at DESC, transfer_id
                """,  # noqa: S608  # table name is a module constant
                [connection_id, connection_id],
            ).fetchall()

        return [_transfer_from_row(row) for row in rows]

    def get_status(self) -> dict[str, int]:
        """Row counts per store table."""
        status: dict[str, int] = {}
        with self._connect() as conn:
            for table in (CONNECTIONS_TABLE, TRANSFERS_TABLE):
                result = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()  # noqa: S608
                status[table] = int(result[0]) if result else 0
        return status


def _connection_from_row(row: tuple[Any, ...]) -> LinkedConnection:
    connection_id, user_id, access_token, shareable_id, created_at = row
    return LinkedConnection(
        connection_id=connection_id,
        user_id=user_id,
        access_token=access_token,
        shareable_id=shareable_id,
        created_at=created_at,
    )


def _transfer_from_row(row: tuple[Any, ...]) -> TransferRecord:
    (
        transfer_id,
        name,
        amount,
        channel,
        category,
        sender_connection_id,
        receiver_connection_id,
        email,
        created_at,
    ) = row
    return TransferRecord(
        id=transfer_id,
        name=name,
        amount=Decimal(amount),
        channel=channel,
        category=category,
        sender_connection_id=sender_connection_id,
        receiver_connection_id=receiver_connection_id,
        email=email,
        created_at=created_at,
    )
