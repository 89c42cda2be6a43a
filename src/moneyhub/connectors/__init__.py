"""Connectors to external account-data providers."""

from .plaid_gateway import PlaidGateway, build_plaid_client

__all__ = ["PlaidGateway", "build_plaid_client"]
