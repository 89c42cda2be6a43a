"""Per-account transaction feed merging Plaid data with local transfers.

The feed for one connection is the concatenation of Plaid transactions and the
transfers recorded locally for that connection, sorted by date, newest first.
The sort is stable and Plaid rows come first in the concatenation, so on equal
dates Plaid rows precede transfer rows and each source keeps its own order.
"""

import logging
import math
from collections.abc import Iterable, Sequence

from ..config import AggregationConfig
from ..errors import Err, NotFoundError
from ..ports import AccountDataGateway, ConnectionStore, TransferStore
from ..schemas import (
    AccountDetail,
    ExternalTransactionRecord,
    MergedTransaction,
    TransactionPage,
    TransferRecord,
)
from .accounts import build_snapshot, primary_account
from .institutions import InstitutionResolver

logger = logging.getLogger(__name__)


def from_provider(record: ExternalTransactionRecord) -> MergedTransaction:
    """Plaid transaction as a feed row; amount sign is left as Plaid reports it."""
    return MergedTransaction(
        id=record.id,
        name=record.name,
        amount=record.amount,
        date=record.date,
        payment_channel=record.payment_channel,
        category=record.category,
        source="provider",
        account_id=record.account_id,
        pending=record.pending,
        image=record.image,
    )


def from_transfer(record: TransferRecord, connection_id: str) -> MergedTransaction:
    """Transfer as a feed row, debit when ``connection_id`` sent it."""
    return MergedTransaction(
        id=record.id,
        name=record.name,
        amount=record.amount,
        date=record.created_at.date(),
        payment_channel=record.channel,
        category=record.category,
        source="transfer",
        direction="debit" if record.sender_connection_id == connection_id else "credit",
        created_at=record.created_at,
    )


def merge_transactions(
    provider: Iterable[MergedTransaction],
    transfers: Iterable[MergedTransaction],
) -> list[MergedTransaction]:
    """Concatenate provider rows then transfer rows and sort newest first.

    ``sorted`` is stable with ``reverse=True``, so rows sharing a date keep
    their concatenation order.
    """
    return sorted([*provider, *transfers], key=lambda tx: tx.date, reverse=True)


def paginate_transactions(
    transactions: Sequence[MergedTransaction], page: int, per_page: int
) -> TransactionPage:
    """Window the merged feed; out-of-range pages clamp to the nearest page."""
    if per_page < 1:
        raise ValueError("per_page must be a positive integer")

    total_items = len(transactions)
    total_pages = max(1, math.ceil(total_items / per_page))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page

    return TransactionPage(
        page=page,
        per_page=per_page,
        total_pages=total_pages,
        total_items=total_items,
        items=list(transactions[start : start + per_page]),
    )


class TransactionMerger:
    """Builds the account detail view for one linked connection."""

    def __init__(
        self,
        connections: ConnectionStore,
        transfers: TransferStore,
        gateway: AccountDataGateway,
        resolver: InstitutionResolver,
        config: AggregationConfig | None = None,
    ):
        self.connections = connections
        self.transfers = transfers
        self.gateway = gateway
        self.resolver = resolver
        self.config = config or AggregationConfig()

    def get_account_detail(
        self, connection_id: str, page: int | None = None
    ) -> AccountDetail:
        """Fetch one connection's snapshot with its merged transaction feed.

        Args:
            connection_id: Linked connection to inspect
            page: Optional 1-based page of the merged feed to window into
                ``AccountDetail.page``. The full feed is always merged first.

        Returns:
            AccountDetail: Snapshot, merged feed, and institution metadata.
            When the institution cannot be resolved, ``institution`` is None
            and ``degraded`` is True.

        Raises:
            NotFoundError: If the connection is unknown or Plaid returns no
                account for it
        """
        connection = self.connections.get_connection(connection_id)
        if connection is None:
            raise NotFoundError(f"Bank not found: {connection_id}")

        logger.info(f"Fetching account info from Plaid for bank {connection_id}")
        accounts = self.gateway.get_accounts(connection.access_token)
        if isinstance(accounts, Err):
            raise NotFoundError(
                f"No account data for bank {connection_id}: {accounts.message}"
            )
        account = primary_account(accounts.value)
        if account is None:
            raise NotFoundError(f"No account data for bank {connection_id}")

        transfers = [
            from_transfer(record, connection_id)
            for record in self.transfers.list_transfers(connection_id)
        ]

        institution_info = None
        resolved = self.resolver.resolve(accounts.value.institution_id)
        if isinstance(resolved, Err):
            logger.warning(
                f"Returning bank {connection_id} without institution metadata"
            )
        else:
            institution_info = resolved.value

        provider = [
            from_provider(record)
            for record in self.gateway.sync_transactions(connection.access_token)
        ]

        transactions = merge_transactions(provider, transfers)
        logger.info(
            f"Merged {len(provider)} Plaid and {len(transfers)} transfer "
            f"transactions for bank {connection_id}"
        )

        return AccountDetail(
            data=build_snapshot(
                account,
                connection,
                institution_info.institution_id if institution_info else None,
            ),
            transactions=transactions,
            institution=institution_info,
            degraded=institution_info is None,
            page=(
                paginate_transactions(
                    transactions, page, self.config.transactions_per_page
                )
                if page is not None
                else None
            ),
        )
