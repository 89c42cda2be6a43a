"""Aggregation services: accounts, transaction feeds, and the home overview."""

from .accounts import AccountAggregator
from .factory import ServiceContainer, create_services
from .institutions import InstitutionResolver
from .overview import Overview, OverviewStatus, load_overview
from .transactions import (
    TransactionMerger,
    merge_transactions,
    paginate_transactions,
)

__all__ = [
    "AccountAggregator",
    "InstitutionResolver",
    "Overview",
    "OverviewStatus",
    "ServiceContainer",
    "TransactionMerger",
    "create_services",
    "load_overview",
    "merge_transactions",
    "paginate_transactions",
]
