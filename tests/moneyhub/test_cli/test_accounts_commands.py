# ruff: noqa: S101
"""Tests for the accounts CLI commands.

The service graph is replaced with in-memory fakes, so these tests cover
argument parsing, exit codes and output rather than Plaid access.
"""

import json
from datetime import date, datetime
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import polars as pl
import pytest
from fakes import (
    FakeConnectionStore,
    FakeGateway,
    FakeTransferStore,
    make_account,
    make_connection,
    make_payload,
    make_provider_tx,
    make_transfer,
)
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from moneyhub.cli.main import app
from moneyhub.config import AggregationConfig
from moneyhub.errors import ConfigurationError, Ok
from moneyhub.schemas import UserIdentity
from moneyhub.services.accounts import AccountAggregator
from moneyhub.services.institutions import InstitutionResolver
from moneyhub.services.transactions import TransactionMerger


class StaticIdentity:
    def __init__(self, user: UserIdentity | None):
        self.user = user

    def get_current_user(self) -> UserIdentity | None:
        return self.user


def _container(
    user: UserIdentity | None,
    connections: list,
    gateway: FakeGateway,
    transfers: FakeTransferStore | None = None,
) -> SimpleNamespace:
    store = FakeConnectionStore(connections)
    resolver = InstitutionResolver(gateway)
    config = AggregationConfig(max_workers=2, fetch_timeout=5.0, transactions_per_page=2)
    return SimpleNamespace(
        identity=StaticIdentity(user),
        aggregator=AccountAggregator(store, gateway, resolver, config),
        merger=TransactionMerger(
            store, transfers or FakeTransferStore(), gateway, resolver, config
        ),
    )


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def bank():
    connection = make_connection("bank_1")
    gateway = FakeGateway(
        accounts={
            connection.access_token: Ok(
                make_payload(make_account("acc_1", current=1250.5, available=1200.0))
            )
        },
        transactions={
            connection.access_token: [
                make_provider_tx("p1", date(2024, 1, 3)),
                make_provider_tx("p2", date(2024, 1, 1)),
            ]
        },
    )
    transfers = FakeTransferStore(
        {"bank_1": [make_transfer("t1", datetime(2024, 1, 2), sender="bank_1")]}
    )
    return connection, gateway, transfers


@pytest.fixture
def patch_services(mocker: MockerFixture):
    """Patch settings loading and return a setter for the service container."""
    mocker.patch("moneyhub.cli.commands.accounts.get_settings")

    def _set(container: object) -> MagicMock:
        return mocker.patch(
            "moneyhub.cli.commands.accounts.create_services", return_value=container
        )

    return _set


class TestListCommand:
    @pytest.mark.unit
    def test_lists_accounts_for_session_user(
        self, runner: CliRunner, patch_services, bank
    ) -> None:
        connection, gateway, _ = bank
        patch_services(_container(UserIdentity(user_id="user_1"), [connection], gateway))

        result = runner.invoke(app, ["accounts", "list"])

        assert result.exit_code == 0
        assert "Linked banks: 1" in result.stdout
        assert "$1,250.50" in result.stdout
        assert "bank_1" in result.stdout

    @pytest.mark.unit
    def test_json_output(self, runner: CliRunner, patch_services, bank) -> None:
        connection, gateway, _ = bank
        patch_services(_container(UserIdentity(user_id="user_1"), [connection], gateway))

        result = runner.invoke(app, ["accounts", "list", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["total_banks"] == 1
        assert payload["total_current_balance"] == 1250.5
        assert payload["data"][0]["connection_id"] == "bank_1"

    @pytest.mark.unit
    def test_explicit_user_skips_session(
        self, runner: CliRunner, patch_services, bank
    ) -> None:
        connection, gateway, _ = bank
        patch_services(_container(None, [connection], gateway))

        result = runner.invoke(app, ["accounts", "list", "--user", "user_1"])

        assert result.exit_code == 0
        assert "Linked banks: 1" in result.stdout

    @pytest.mark.unit
    def test_without_session_exits_1(
        self, runner: CliRunner, patch_services, bank
    ) -> None:
        connection, gateway, _ = bank
        patch_services(_container(None, [connection], gateway))

        result = runner.invoke(app, ["accounts", "list"])

        assert result.exit_code == 1
        assert gateway.account_calls == []

    @pytest.mark.unit
    def test_no_connections_exits_1(self, runner: CliRunner, patch_services) -> None:
        patch_services(_container(UserIdentity(user_id="user_1"), [], FakeGateway()))

        result = runner.invoke(app, ["accounts", "list"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_configuration_error_exits_1(
        self, runner: CliRunner, mocker: MockerFixture
    ) -> None:
        mocker.patch("moneyhub.cli.commands.accounts.get_settings")
        mocker.patch(
            "moneyhub.cli.commands.accounts.create_services",
            side_effect=ConfigurationError("Plaid credentials are not configured"),
        )

        result = runner.invoke(app, ["accounts", "list"])

        assert result.exit_code == 1


class TestShowCommand:
    @pytest.mark.unit
    def test_shows_merged_feed(self, runner: CliRunner, patch_services, bank) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))

        result = runner.invoke(app, ["accounts", "show", "bank_1"])

        assert result.exit_code == 0
        assert "Transactions (3):" in result.stdout
        lines = [line for line in result.stdout.splitlines() if "2024-01-0" in line]
        assert [line.split()[0] for line in lines] == [
            "2024-01-03",
            "2024-01-02",
            "2024-01-01",
        ]
        assert "debit" in lines[1]

    @pytest.mark.unit
    def test_page_option(self, runner: CliRunner, patch_services, bank) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))

        result = runner.invoke(app, ["accounts", "show", "bank_1", "--page", "2"])

        assert result.exit_code == 0
        assert "page 2 of 2" in result.stdout

    @pytest.mark.unit
    def test_json_output(self, runner: CliRunner, patch_services, bank) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))

        result = runner.invoke(app, ["accounts", "show", "bank_1", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [tx["id"] for tx in payload["transactions"]] == ["p1", "t1", "p2"]
        assert payload["degraded"] is False

    @pytest.mark.unit
    def test_unknown_bank_exits_1(self, runner: CliRunner, patch_services, bank) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))

        result = runner.invoke(app, ["accounts", "show", "bank_missing"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_page_must_be_positive(self, runner: CliRunner, patch_services, bank) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))

        result = runner.invoke(app, ["accounts", "show", "bank_1", "--page", "0"])

        assert result.exit_code != 0


class TestExportCommand:
    @pytest.mark.unit
    def test_exports_csv(
        self, runner: CliRunner, patch_services, bank, tmp_path: Path
    ) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))
        output = tmp_path / "bank_1.csv"

        result = runner.invoke(app, ["accounts", "export", "bank_1", "-o", str(output)])

        assert result.exit_code == 0
        assert pl.read_csv(output)["id"].to_list() == ["p1", "t1", "p2"]

    @pytest.mark.unit
    def test_unsupported_format_exits_1(
        self, runner: CliRunner, patch_services, bank, tmp_path: Path
    ) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))

        result = runner.invoke(
            app, ["accounts", "export", "bank_1", "-o", str(tmp_path / "bank_1.json")]
        )

        assert result.exit_code == 1


class TestOverviewCommand:
    @pytest.mark.unit
    def test_shows_accounts_and_first_bank(
        self, runner: CliRunner, patch_services, bank
    ) -> None:
        connection, gateway, transfers = bank
        patch_services(
            _container(UserIdentity(user_id="user_1"), [connection], gateway, transfers)
        )

        result = runner.invoke(app, ["accounts", "overview"])

        assert result.exit_code == 0
        assert "Welcome, user_1" in result.stdout
        assert "Linked banks: 1" in result.stdout
        assert "page 1 of 2" in result.stdout

    @pytest.mark.unit
    def test_not_logged_in_exits_1(self, runner: CliRunner, patch_services, bank) -> None:
        connection, gateway, transfers = bank
        patch_services(_container(None, [connection], gateway, transfers))

        result = runner.invoke(app, ["accounts", "overview"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_no_accounts_exits_1(self, runner: CliRunner, patch_services) -> None:
        patch_services(_container(UserIdentity(user_id="user_1"), [], FakeGateway()))

        result = runner.invoke(app, ["accounts", "overview"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_unavailable_selection(
        self, runner: CliRunner, patch_services, bank
    ) -> None:
        connection, gateway, transfers = bank
        patch_services(
            _container(UserIdentity(user_id="user_1"), [connection], gateway, transfers)
        )

        result = runner.invoke(app, ["accounts", "overview", "--id", "bank_missing"])

        assert result.exit_code == 0
        assert "Account bank_missing is unavailable." in result.stdout
