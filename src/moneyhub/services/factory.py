"""Builds the service graph once from explicit settings."""

import logging
from dataclasses import dataclass

from ..config import MoneyHubSettings
from ..connectors.plaid_gateway import PlaidGateway
from ..errors import ConfigurationError
from ..stores.duckdb_store import DuckDBStore
from ..stores.identity import SettingsIdentityProvider
from .accounts import AccountAggregator
from .institutions import InstitutionResolver
from .transactions import TransactionMerger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceContainer:
    """Long-lived collaborators shared by every request in a process."""

    gateway: PlaidGateway
    store: DuckDBStore
    identity: SettingsIdentityProvider
    resolver: InstitutionResolver
    aggregator: AccountAggregator
    merger: TransactionMerger


def create_services(settings: MoneyHubSettings) -> ServiceContainer:
    """Wire gateway, store, resolver and services from ``settings``.

    Raises:
        ConfigurationError: If the Plaid credentials are missing
    """
    if not settings.plaid.client_id or not settings.plaid.secret:
        raise ConfigurationError(
            "Plaid credentials are not configured. Set PLAID_CLIENT_ID and "
            "PLAID_SECRET (or MONEYHUB_PLAID__CLIENT_ID / MONEYHUB_PLAID__SECRET)."
        )

    gateway = PlaidGateway(settings.plaid)
    store = DuckDBStore(settings.database.path)
    resolver = InstitutionResolver(
        gateway, cache_enabled=settings.aggregation.cache_institutions
    )

    logger.debug(f"Services created for profile {settings.profile}")
    return ServiceContainer(
        gateway=gateway,
        store=store,
        identity=SettingsIdentityProvider(settings),
        resolver=resolver,
        aggregator=AccountAggregator(store, gateway, resolver, settings.aggregation),
        merger=TransactionMerger(
            store, store, gateway, resolver, settings.aggregation
        ),
    )
