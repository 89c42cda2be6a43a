"""Account and transaction commands for MoneyHub CLI.

These commands run the aggregation services against live Plaid data and the
local store, and print either a readable summary or JSON.
"""

import logging
from pathlib import Path

import typer

from moneyhub.config import get_settings
from moneyhub.errors import ConfigurationError, NotFoundError
from moneyhub.export import write_transactions
from moneyhub.schemas import AccountDetail, AggregateResult, MergedTransaction
from moneyhub.services import (
    OverviewStatus,
    ServiceContainer,
    create_services,
    load_overview,
)

app = typer.Typer(help="View linked accounts and their transactions")
logger = logging.getLogger(__name__)


def _load_services() -> ServiceContainer:
    try:
        return create_services(get_settings())
    except (ValueError, ConfigurationError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e


def _format_money(value: float | None) -> str:
    return "n/a" if value is None else f"${value:,.2f}"


def _echo_accounts(result: AggregateResult) -> None:
    typer.echo(f"Linked banks: {result.total_banks}")
    typer.echo(f"Total current balance: {_format_money(result.total_current_balance)}")
    for snapshot in result.data:
        typer.echo(
            f"  {snapshot.connection_id}  {snapshot.name} ****{snapshot.mask or '----'}"
            f"  {snapshot.subtype or snapshot.type}"
            f"  current {_format_money(snapshot.current_balance)}"
            f"  available {_format_money(snapshot.available_balance)}"
        )


def _echo_transaction(tx: MergedTransaction) -> None:
    tag = tx.direction or ("pending" if tx.pending else tx.source)
    typer.echo(
        f"  {tx.date.isoformat()}  {tx.amount:>12}  {tag:<8}  {tx.name}"
        f"  [{tx.category or tx.payment_channel}]"
    )


def _echo_detail(detail: AccountDetail) -> None:
    snapshot = detail.data
    institution = detail.institution.name if detail.institution else "unknown bank"
    typer.echo(f"{snapshot.name} ({institution})")
    typer.echo(
        f"Current {_format_money(snapshot.current_balance)}, "
        f"available {_format_money(snapshot.available_balance)}"
    )
    if detail.degraded:
        typer.echo("Institution details are temporarily unavailable.")

    if detail.page is not None:
        rows = detail.page.items
        typer.echo(
            f"Transactions (page {detail.page.page} of {detail.page.total_pages}, "
            f"{detail.page.total_items} total):"
        )
    else:
        rows = detail.transactions
        typer.echo(f"Transactions ({len(rows)}):")
    for tx in rows:
        _echo_transaction(tx)


@app.command("list")
def list_accounts(
    user_id: str | None = typer.Option(
        None, "--user", "-u", help="User ID (default: the session user)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """List every linked account with total balance and bank count.

    Examples:
        moneyhub accounts list
        moneyhub accounts list --user user_123 --json
    """
    services = _load_services()

    if user_id is None:
        user = services.identity.get_current_user()
        if user is None:
            logger.error("❌ Please log in to view your accounts (set MONEYHUB_USER_ID)")
            raise typer.Exit(1)
        user_id = user.user_id

    try:
        result = services.aggregator.list_accounts(user_id)
    except NotFoundError as e:
        logger.error("❌ No accounts found.")
        raise typer.Exit(1) from e

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _echo_accounts(result)


@app.command("show")
def show_account(
    connection_id: str = typer.Argument(..., help="Linked bank (connection) ID"),
    page: int | None = typer.Option(
        None, "--page", min=1, help="Page of the transaction feed to show"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Show one account with its merged transaction feed.

    Examples:
        moneyhub accounts show bank_1
        moneyhub accounts show bank_1 --page 2
    """
    services = _load_services()

    try:
        detail = services.merger.get_account_detail(connection_id, page=page)
    except NotFoundError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    if as_json:
        typer.echo(detail.model_dump_json(indent=2))
    else:
        _echo_detail(detail)


@app.command("export")
def export_transactions(
    connection_id: str = typer.Argument(..., help="Linked bank (connection) ID"),
    output: Path = typer.Option(
        ..., "--output", "-o", help="Destination file (.parquet or .csv)"
    ),
) -> None:
    """Export an account's merged transaction feed to Parquet or CSV.

    Examples:
        moneyhub accounts export bank_1 -o data/exports/bank_1.parquet
    """
    services = _load_services()

    try:
        detail = services.merger.get_account_detail(connection_id)
        path = write_transactions(detail.transactions, output)
    except NotFoundError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ Exported {len(detail.transactions)} transactions to {path}")


@app.command("overview")
def show_overview(
    connection_id: str | None = typer.Option(
        None, "--id", help="Bank to show in detail (default: the first one)"
    ),
    page: int = typer.Option(1, "--page", min=1, help="Page of the transaction feed"),
) -> None:
    """Show the home view: all accounts plus one account's recent transactions."""
    services = _load_services()

    overview = load_overview(
        services.identity,
        services.aggregator,
        services.merger,
        connection_id=connection_id,
        page=page,
    )

    if overview.status is OverviewStatus.NOT_LOGGED_IN:
        logger.error("❌ Please log in to view your account.")
        raise typer.Exit(1)
    if overview.status is OverviewStatus.NO_ACCOUNTS or overview.accounts is None:
        logger.error("❌ No accounts found.")
        raise typer.Exit(1)

    if overview.user is not None:
        typer.echo(f"Welcome, {overview.user.first_name or overview.user.user_id}")
    _echo_accounts(overview.accounts)
    typer.echo("")
    if overview.account is None:
        typer.echo(f"Account {overview.selected_connection_id} is unavailable.")
    else:
        _echo_detail(overview.account)
