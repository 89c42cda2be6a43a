"""Account aggregation across every connection a user has linked.

For a user, the aggregator resolves the stored connections, fetches a live
account snapshot for each one concurrently, resolves each snapshot's
institution, and computes portfolio totals. One connection failing never fails
the aggregate; it simply contributes no snapshot.

Policy: a connection is represented by the first account Plaid returns for it
(index 0). Connections holding several accounts still count once.
"""

import logging
import math
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait

from ..config import AggregationConfig
from ..errors import Err, NotFoundError
from ..ports import AccountDataGateway, ConnectionStore
from ..schemas import (
    AccountSchema,
    AccountSnapshot,
    AccountsPayload,
    AggregateResult,
    LinkedConnection,
)
from .institutions import InstitutionResolver

logger = logging.getLogger(__name__)

# Snapshot (None on failure) and the seconds the fetch took
_TimedSnapshot = tuple[AccountSnapshot | None, float]


def primary_account(payload: AccountsPayload) -> AccountSchema | None:
    """Return the account that represents a connection (the first one)."""
    return payload.accounts[0] if payload.accounts else None


def build_snapshot(
    account: AccountSchema,
    connection: LinkedConnection,
    institution_id: str | None,
) -> AccountSnapshot:
    """Tag a provider account with its owning connection."""
    return AccountSnapshot(
        id=account.account_id,
        available_balance=account.balances.available,
        current_balance=account.balances.current,
        institution_id=institution_id,
        name=account.name,
        official_name=account.official_name,
        mask=account.mask,
        type=account.type,
        subtype=account.subtype,
        connection_id=connection.connection_id,
        shareable_id=connection.shareable_id,
    )


class AccountAggregator:
    """Builds a user's account list and totals from live provider data."""

    def __init__(
        self,
        connections: ConnectionStore,
        gateway: AccountDataGateway,
        resolver: InstitutionResolver,
        config: AggregationConfig | None = None,
    ):
        self.connections = connections
        self.gateway = gateway
        self.resolver = resolver
        self.config = config or AggregationConfig()

    def list_accounts(self, user_id: str) -> AggregateResult:
        """Aggregate live account snapshots for every connection of a user.

        Args:
            user_id: Owner of the linked connections

        Returns:
            AggregateResult: Snapshots in connection order, the number of
            snapshots fetched, and the sum of their current balances (missing
            balances count as 0).

        Raises:
            NotFoundError: If the user has no linked connections
        """
        logger.info(f"Fetching linked banks for user {user_id}")
        connections = list(self.connections.list_connections(user_id))
        if not connections:
            raise NotFoundError(f"No linked banks found for user {user_id}")

        snapshots = self._fetch_snapshots(connections)

        total_current_balance = sum(
            (snapshot.current_balance or 0.0 for snapshot in snapshots), 0.0
        )
        logger.info(
            f"Aggregated {len(snapshots)} of {len(connections)} linked banks "
            f"for user {user_id}"
        )
        return AggregateResult(
            data=snapshots,
            total_banks=len(snapshots),
            total_current_balance=total_current_balance,
        )

    def _fetch_snapshots(
        self, connections: list[LinkedConnection]
    ) -> list[AccountSnapshot]:
        """Fetch one snapshot per connection concurrently, in input order.

        Each fetch is timed from its own start, so a fetch that queued behind
        busy workers still gets the full ``fetch_timeout``. The join waits at
        most one ``fetch_timeout`` per wave of workers.
        """
        workers = min(self.config.max_workers, len(connections))
        timeout = self.config.fetch_timeout
        pool = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="moneyhub-accounts"
        )
        try:
            futures: list[tuple[LinkedConnection, Future[_TimedSnapshot]]] = [
                (connection, pool.submit(self._timed_fetch, connection))
                for connection in connections
            ]
            wait(
                [future for _, future in futures],
                timeout=timeout * math.ceil(len(connections) / workers),
            )

            snapshots: list[AccountSnapshot] = []
            for connection, future in futures:
                if not future.done():
                    logger.warning(
                        f"Timed out fetching accounts for bank {connection.connection_id}"
                    )
                    continue
                try:
                    snapshot, elapsed = future.result()
                except Exception:
                    logger.exception(
                        f"Unexpected error fetching accounts for bank {connection.connection_id}"
                    )
                    continue
                if elapsed > timeout:
                    logger.warning(
                        f"Discarding accounts for bank {connection.connection_id}: "
                        f"fetch took {elapsed:.2f}s (limit {timeout}s)"
                    )
                    continue
                if snapshot is not None:
                    snapshots.append(snapshot)
            return snapshots
        finally:
            # Do not block the request on fetches that already timed out
            pool.shutdown(wait=False, cancel_futures=True)

    def _timed_fetch(self, connection: LinkedConnection) -> _TimedSnapshot:
        started = time.monotonic()
        snapshot = self.fetch_snapshot(connection)
        return snapshot, time.monotonic() - started

    def fetch_snapshot(self, connection: LinkedConnection) -> AccountSnapshot | None:
        """Fetch and tag the snapshot for one connection, or None on failure."""
        result = self.gateway.get_accounts(connection.access_token)
        if isinstance(result, Err):
            logger.warning(
                f"No account data from Plaid for bank {connection.connection_id}: "
                f"{result.message}"
            )
            return None

        account = primary_account(result.value)
        if account is None:
            logger.warning(f"No account data from Plaid for bank {connection.connection_id}")
            return None

        institution = self.resolver.resolve(result.value.institution_id)
        if isinstance(institution, Err):
            logger.warning(
                f"Skipping bank {connection.connection_id}: institution unavailable"
            )
            return None

        return build_snapshot(account, connection, institution.value.institution_id)
