"""Ports for the collaborators the aggregation services depend on.

The identity provider, the linked-connection store, the transfer store, and the
account-data gateway are owned outside the services; these protocols are the
whole contract the services require from them.
"""

from collections.abc import Sequence
from typing import Protocol

from .errors import Result
from .schemas import (
    AccountsPayload,
    ExternalTransactionRecord,
    InstitutionInfo,
    LinkedConnection,
    SyncPage,
    TransferRecord,
    UserIdentity,
)


class IdentityProvider(Protocol):
    """Port exposing the current session's user."""

    def get_current_user(self) -> UserIdentity | None:
        """Return the signed-in user, or None when there is no session."""


class ConnectionStore(Protocol):
    """Port exposing read access to stored linked connections."""

    def list_connections(self, user_id: str) -> Sequence[LinkedConnection]:
        """Return every connection the user has linked, in stored order."""

    def get_connection(self, connection_id: str) -> LinkedConnection | None:
        """Return one connection, or None when the identifier is unknown."""


class TransferStore(Protocol):
    """Port exposing read access to locally recorded transfers."""

    def list_transfers(self, connection_id: str) -> Sequence[TransferRecord]:
        """Return transfers sent or received by the connection."""


class AccountDataGateway(Protocol):
    """Port over the external account-data provider."""

    def get_accounts(self, access_token: str) -> Result[AccountsPayload]:
        """Fetch live accounts for one connection."""

    def get_institution(self, institution_id: str) -> Result[InstitutionInfo]:
        """Fetch institution metadata."""

    def sync_transactions_page(
        self, access_token: str, cursor: str | None
    ) -> Result[SyncPage]:
        """Fetch one page of the transactions sync stream."""

    def sync_transactions(self, access_token: str) -> list[ExternalTransactionRecord]:
        """Fetch every available page; partial on failure, never raises."""


__all__ = [
    "AccountDataGateway",
    "ConnectionStore",
    "IdentityProvider",
    "TransferStore",
]
