"""Entry point for the ``moneyhub`` command.

Global options (profile, verbosity) are handled here; the command groups live
in ``moneyhub.cli.commands``.
"""

import logging
from typing import Annotated

import typer
from pydantic import ValidationError

from .. import __version__
from ..config import DEFAULT_PROFILE, MoneyHubSettings, set_current_profile
from ..logging import LoggingConfig, setup_logging
from .commands import accounts, db

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="moneyhub",
    help="MoneyHub: every linked bank account and its transactions in one view",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)
app.add_typer(accounts.app, name="accounts", help="Account and transaction views")
app.add_typer(db.app, name="db", help="Local store commands")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"moneyhub {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="Settings profile; reads .env.{profile} when it exists",
            envvar="MONEYHUB_PROFILE",
        ),
    ] = DEFAULT_PROFILE,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log at DEBUG level")
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_print_version,
            is_eager=True,
            help="Show the version and exit",
        ),
    ] = False,
) -> None:
    """MoneyHub command line.

    A profile selects Plaid credentials, the local store and the session user
    (MONEYHUB_USER_ID), so several people or Plaid environments can share one
    checkout.

    Examples:
      moneyhub accounts list
      moneyhub -p alice accounts show bank_1 --page 2
      moneyhub db init
    """
    try:
        set_current_profile(profile)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--profile") from e

    # Plaid credentials are not needed here; commands validate them on use
    try:
        logging_settings = MoneyHubSettings(profile=profile).logging
    except ValidationError as e:
        setup_logging(cli_mode=True, verbose=verbose)
        logger.error(f"❌ Invalid settings for profile '{profile}': {e}")
        raise typer.Exit(1) from e
    setup_logging(
        LoggingConfig.from_settings(logging_settings), cli_mode=True, verbose=verbose
    )

    logger.debug(f"Using profile: {profile}")


def main() -> None:
    """Run the ``moneyhub`` CLI."""
    app()


if __name__ == "__main__":
    main()
