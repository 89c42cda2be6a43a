"""Home view: the signed-in user's accounts plus one selected account.

The three outcomes a caller must tell apart are no session, no accounts, and
a populated overview.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from ..errors import NotFoundError
from ..ports import IdentityProvider
from ..schemas import AccountDetail, AggregateResult, UserIdentity
from .accounts import AccountAggregator
from .transactions import TransactionMerger

logger = logging.getLogger(__name__)


class OverviewStatus(Enum):
    NOT_LOGGED_IN = "not_logged_in"
    NO_ACCOUNTS = "no_accounts"
    READY = "ready"


class Overview(BaseModel):
    """Everything the home view needs in one response."""

    model_config = ConfigDict(frozen=True)

    status: OverviewStatus
    user: UserIdentity | None = None
    accounts: AggregateResult | None = None
    selected_connection_id: str | None = None
    account: AccountDetail | None = None


def load_overview(
    identity: IdentityProvider,
    aggregator: AccountAggregator,
    merger: TransactionMerger,
    connection_id: str | None = None,
    page: int = 1,
) -> Overview:
    """Load the home view for the current user.

    Args:
        identity: Source of the current session's user
        aggregator: Account aggregation service
        merger: Account detail service
        connection_id: Connection to show in detail; defaults to the first
            aggregated account's connection. A connection outside the
            user's aggregated accounts is not loaded.
        page: Page of the selected account's transaction feed

    Returns:
        Overview: NOT_LOGGED_IN without a session, NO_ACCOUNTS when the user
        has no connections or none could be fetched, READY otherwise.
    """
    user = identity.get_current_user()
    if user is None:
        return Overview(status=OverviewStatus.NOT_LOGGED_IN)

    try:
        accounts = aggregator.list_accounts(user.user_id)
    except NotFoundError as e:
        logger.info(str(e))
        return Overview(status=OverviewStatus.NO_ACCOUNTS, user=user)

    if not accounts.data:
        return Overview(status=OverviewStatus.NO_ACCOUNTS, user=user, accounts=accounts)

    selected = connection_id or accounts.data[0].connection_id
    account = None
    if selected not in {snapshot.connection_id for snapshot in accounts.data}:
        logger.warning(f"Bank {selected} is not among the accounts of user {user.user_id}")
    else:
        try:
            account = merger.get_account_detail(selected, page=page)
        except NotFoundError as e:
            logger.warning(str(e))

    return Overview(
        status=OverviewStatus.READY,
        user=user,
        accounts=accounts,
        selected_connection_id=selected,
        account=account,
    )
