"""Pydantic schemas for MoneyHub.

Two groups of models live here:
- Provider schemas validate Plaid SDK objects (or plain dicts) as they come
  off the wire, coercing SDK enum wrappers into strings.
- Domain models are the frozen records the aggregator and merger hand to
  callers: account snapshots, transaction records, and the merged feed.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

TransactionSource = Literal["provider", "transfer"]
TransferDirection = Literal["debit", "credit"]


def _coerce_sdk_value(v: Any) -> Any:
    """Unwrap Plaid SDK enum-like objects (which expose ``.value``) to strings."""
    if v is None:
        return None
    value = getattr(v, "value", v)
    return value if isinstance(value, str) else str(value)


# Provider Schemas


class ProviderSchema(BaseModel):
    """Base schema for data read from the Plaid SDK."""

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        from_attributes=True,
        populate_by_name=True,
    )


class BalanceSchema(ProviderSchema):
    """Schema for account balance information."""

    available: float | None = Field(None, description="Available balance")
    current: float | None = Field(None, description="Current balance")
    limit: float | None = Field(None, description="Credit limit or overdraft limit")
    iso_currency_code: str | None = Field(None, max_length=3)


class AccountSchema(ProviderSchema):
    """Schema for Plaid account data."""

    account_id: str = Field(..., description="Plaid account ID")
    balances: BalanceSchema
    mask: str | None = Field(None, max_length=4)
    name: str = Field(..., description="Account name")
    official_name: str | None = None
    subtype: str | None = None
    type: str

    @field_validator("type", "subtype", mode="before")
    @classmethod
    def coerce_account_enums(cls, v: Any) -> Any:
        """Accept Plaid SDK enum or string and convert to string."""
        return _coerce_sdk_value(v)


class AccountsPayload(ProviderSchema):
    """Accounts returned for one access token, with the item's institution."""

    accounts: list[AccountSchema] = Field(default_factory=list)
    institution_id: str | None = None


class TransactionSchema(ProviderSchema):
    """Schema for a transaction added in a Plaid transactions sync page."""

    transaction_id: str = Field(..., description="Plaid transaction ID")
    account_id: str = Field(..., description="Associated account ID")
    amount: Decimal = Field(..., description="Transaction amount")
    iso_currency_code: str | None = Field(None, max_length=3)
    transaction_date: date = Field(..., description="Transaction date", alias="date")
    name: str | None = None
    merchant_name: str | None = None
    category: list[str] = Field(default_factory=list)
    payment_channel: str | None = None
    pending: bool = False
    logo_url: str | None = None

    @field_validator("payment_channel", mode="before")
    @classmethod
    def coerce_payment_channel(cls, v: Any) -> Any:
        """Coerce the Plaid SDK payment channel enum into a string."""
        return _coerce_sdk_value(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Any:
        """Ensure category is a list of strings; Plaid may return None."""
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            items = cast(list[object], list(v))
            return [str(x) for x in items]
        return [str(v)]


class SyncPage(ProviderSchema):
    """One page of a Plaid ``/transactions/sync`` response."""

    added: list[TransactionSchema] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


class InstitutionSchema(ProviderSchema):
    """Schema for Plaid institution metadata."""

    institution_id: str
    name: str
    url: str | None = None
    logo: str | None = None
    primary_color: str | None = None


# Domain Models


class DomainModel(BaseModel):
    """Base for immutable records produced and consumed by the services."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class UserIdentity(DomainModel):
    """The signed-in user as reported by the identity provider."""

    user_id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None


class LinkedConnection(DomainModel):
    """A stored link between a user and one institution."""

    connection_id: str
    user_id: str
    access_token: str = Field(..., repr=False)
    shareable_id: str
    created_at: datetime | None = None


class InstitutionInfo(DomainModel):
    """Institution metadata resolved from the provider."""

    institution_id: str
    name: str
    url: str | None = None
    logo: str | None = None
    primary_color: str | None = None


class AccountSnapshot(DomainModel):
    """Point-in-time read of one account, tagged with its owning connection."""

    id: str
    available_balance: float | None = None
    current_balance: float | None = None
    institution_id: str | None = None
    name: str
    official_name: str | None = None
    mask: str | None = None
    type: str
    subtype: str | None = None
    connection_id: str
    shareable_id: str


class ExternalTransactionRecord(DomainModel):
    """A provider transaction converted into the internal shape."""

    id: str
    name: str
    payment_channel: str
    account_id: str
    amount: Decimal
    pending: bool = False
    category: str = ""
    date: date
    image: str | None = None


class TransferRecord(DomainModel):
    """A peer transfer recorded locally between two connections."""

    id: str
    name: str
    amount: Decimal
    created_at: datetime
    channel: str
    category: str
    sender_connection_id: str
    receiver_connection_id: str | None = None
    email: str | None = None


class MergedTransaction(DomainModel):
    """Unified row of the account feed.

    ``direction`` is set only for transfer rows; provider rows carry Plaid's
    sign convention on ``amount`` instead.
    """

    id: str
    name: str
    amount: Decimal
    date: date
    payment_channel: str
    category: str
    source: TransactionSource
    direction: TransferDirection | None = None
    account_id: str | None = None
    pending: bool = False
    image: str | None = None
    created_at: datetime | None = None


class AggregateResult(DomainModel):
    """All of a user's account snapshots plus portfolio totals."""

    data: list[AccountSnapshot]
    total_banks: int
    total_current_balance: float


class TransactionPage(DomainModel):
    """A window onto the merged feed."""

    page: int
    per_page: int
    total_pages: int
    total_items: int
    items: list[MergedTransaction]


class AccountDetail(DomainModel):
    """One account snapshot with its merged, newest-first transactions."""

    data: AccountSnapshot
    transactions: list[MergedTransaction]
    institution: InstitutionInfo | None = None
    degraded: bool = False
    page: TransactionPage | None = None
