"""MoneyHub: unified view of a user's linked bank accounts and transactions.

This package aggregates accounts and transactions from every Plaid connection a
user has linked, and merges them with locally recorded peer-to-peer transfers:
- Per-user account list with total balance and linked bank count
- Per-account transaction feed ordered by date, newest first
- Partial-failure tolerant fan-out across connections
- DuckDB-backed store for linked connections and transfer records
- Typer CLI for inspecting and exporting the aggregated data
"""

__version__ = "0.1.0"
