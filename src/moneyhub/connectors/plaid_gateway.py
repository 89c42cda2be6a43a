"""Plaid gateway: typed access to accounts, institutions and transactions.

This module wraps the Plaid Python SDK and converts its responses into
MoneyHub schemas. Every public call returns a ``Result``; provider errors,
timeouts and malformed payloads become ``Err`` values and are logged, so a
failing connection never raises into the aggregation services.
"""

import json
import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.transactions_sync_request import TransactionsSyncRequest

from ..config import PlaidConfig
from ..errors import Err, ErrorKind, Ok, Result
from ..schemas import (
    AccountSchema,
    AccountsPayload,
    ExternalTransactionRecord,
    InstitutionInfo,
    InstitutionSchema,
    SyncPage,
    TransactionSchema,
)

logger = logging.getLogger(__name__)

PLAID_HOSTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


def build_plaid_client(config: PlaidConfig) -> Any:
    """Create a Plaid API client for the configured environment."""
    configuration = Configuration(
        host=PLAID_HOSTS[config.environment],
        api_key={
            "clientId": config.client_id,
            "secret": config.secret,
        },
    )
    return plaid_api.PlaidApi(ApiClient(configuration))


def _error_code(exc: ApiException) -> str | None:
    """Extract Plaid's ``error_code`` from an API exception body, if present."""
    body = getattr(exc, "body", None)
    if not isinstance(body, (str, bytes)):
        return None
    try:
        details = json.loads(body)
    except ValueError:
        return None
    return details.get("error_code") if isinstance(details, dict) else None


def to_external_transaction(tx: TransactionSchema) -> ExternalTransactionRecord:
    """Convert a validated Plaid transaction into the internal record shape."""
    return ExternalTransactionRecord(
        id=tx.transaction_id,
        name=tx.name or tx.merchant_name or "",
        payment_channel=tx.payment_channel or "other",
        account_id=tx.account_id,
        amount=tx.amount,
        pending=tx.pending,
        category=tx.category[0] if tx.category else "",
        date=tx.transaction_date,
        image=tx.logo_url,
    )


class PlaidGateway:
    """Plaid SDK façade returning typed results.

    The client is built from an explicit ``PlaidConfig``; pass ``client`` to
    substitute a stub in tests.
    """

    def __init__(self, config: PlaidConfig, client: Any | None = None):
        self.config = config
        # Typed as Any to avoid partial-unknowns from the SDK stubs
        self.client: Any = client if client is not None else build_plaid_client(config)

        logger.debug(f"Initialized Plaid gateway for {config.environment} environment")

    def _call(self, operation: Callable[..., Any], request: Any) -> Any:
        """Invoke an SDK operation with the request timeout.

        Sandbox items answer PRODUCT_NOT_READY until their data is prepared;
        those responses are retried, everything else propagates.
        """
        retries = 0
        while True:
            try:
                return operation(request, _request_timeout=self.config.request_timeout)
            except ApiException as exc:
                if (
                    _error_code(exc) != "PRODUCT_NOT_READY"
                    or retries >= self.config.max_retries
                ):
                    raise
                retries += 1
                logger.debug(
                    f"Plaid product not ready, retrying ({retries}/{self.config.max_retries})"
                )
                time.sleep(self.config.retry_delay)

    def _failure(self, operation: str, exc: Exception) -> Err:
        if isinstance(exc, ApiException):
            code = _error_code(exc)
            logger.warning(f"Plaid {operation} failed with {exc.status} {code or ''}")
            return Err(
                ErrorKind.UPSTREAM_UNAVAILABLE,
                f"Plaid {operation} failed: {code or exc.reason}",
                code=code,
            )
        logger.warning(f"Plaid {operation} failed: {type(exc).__name__}: {exc}")
        return Err(ErrorKind.UPSTREAM_UNAVAILABLE, f"Plaid {operation} failed: {exc}")

    def get_accounts(self, access_token: str) -> Result[AccountsPayload]:
        """Fetch the accounts behind one access token.

        Args:
            access_token: Plaid access token for the connection

        Returns:
            Result[AccountsPayload]: Accounts in provider order plus the item's
            institution ID, or an ``Err`` when Plaid could not be reached.
        """
        try:
            response = self._call(
                self.client.accounts_get, AccountsGetRequest(access_token=access_token)
            )
            accounts = [
                AccountSchema.model_validate(acct)
                for acct in getattr(response, "accounts", None) or []
            ]
            institution_id = getattr(
                getattr(response, "item", None), "institution_id", None
            )
        except Exception as e:
            return self._failure("accounts_get", e)

        return Ok(AccountsPayload(accounts=accounts, institution_id=institution_id))

    def get_institution(self, institution_id: str) -> Result[InstitutionInfo]:
        """Fetch institution metadata by Plaid institution ID."""
        try:
            request = InstitutionsGetByIdRequest(
                institution_id=institution_id,
                country_codes=[CountryCode(code) for code in self.config.country_codes],
            )
            response = self._call(self.client.institutions_get_by_id, request)
            institution = InstitutionSchema.model_validate(
                getattr(response, "institution", None)
            )
        except Exception as e:
            return self._failure("institutions_get_by_id", e)

        return Ok(InstitutionInfo(**institution.model_dump()))

    def sync_transactions_page(
        self, access_token: str, cursor: str | None
    ) -> Result[SyncPage]:
        """Fetch one page of ``/transactions/sync`` starting at ``cursor``."""
        options: dict[str, Any] = {
            "access_token": access_token,
            "count": self.config.sync_page_size,
        }
        if cursor:
            options["cursor"] = cursor

        try:
            response = self._call(
                self.client.transactions_sync, TransactionsSyncRequest(**options)
            )
            page = SyncPage(
                added=[
                    TransactionSchema.model_validate(tx)
                    for tx in getattr(response, "added", None) or []
                ],
                has_more=bool(getattr(response, "has_more", False)),
                next_cursor=getattr(response, "next_cursor", None),
            )
        except Exception as e:
            return self._failure("transactions_sync", e)

        return Ok(page)

    def iter_transactions(self, access_token: str) -> Iterator[ExternalTransactionRecord]:
        """Lazily walk the sync stream from the beginning.

        Paging stops when a page adds nothing, when ``has_more`` is false, or
        after ``max_sync_pages`` pages. A failing page ends the stream; what
        was already yielded stays valid.
        """
        cursor: str | None = None

        for page_number in range(1, self.config.max_sync_pages + 1):
            result = self.sync_transactions_page(access_token, cursor)
            if isinstance(result, Err):
                logger.warning(
                    f"Transaction sync stopped at page {page_number}: {result.message}"
                )
                return

            page = result.value
            if not page.added:
                return

            logger.debug(f"Sync page {page_number}: {len(page.added)} added")
            for tx in page.added:
                yield to_external_transaction(tx)

            if not page.has_more:
                return
            cursor = page.next_cursor

        logger.warning(
            f"Transaction sync stopped after {self.config.max_sync_pages} pages "
            "with more data pending"
        )

    def sync_transactions(self, access_token: str) -> list[ExternalTransactionRecord]:
        """Fetch every available transaction for a connection.

        An empty or short list means "try again later", not that the account
        has no transactions.
        """
        transactions = list(self.iter_transactions(access_token))
        logger.info(f"Fetched {len(transactions)} transactions from Plaid")
        return transactions
