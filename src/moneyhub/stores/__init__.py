"""Local adapters for identity, linked connections and transfer records."""

from .duckdb_store import DuckDBStore
from .identity import SettingsIdentityProvider

__all__ = ["DuckDBStore", "SettingsIdentityProvider"]
