"""Shared pytest fixtures for moneyhub tests.

Builders and fakes for stores and the Plaid gateway live in ``fakes.py``.
"""

import os
from collections.abc import Generator
from pathlib import Path

import pytest

from moneyhub.config import AggregationConfig, clear_settings_cache, set_current_profile


@pytest.fixture(autouse=True)
def clean_profile_state() -> Generator[None, None, None]:
    """Clear the settings cache and reset the profile around every test."""
    clear_settings_cache()
    set_current_profile("default")
    yield
    clear_settings_cache()
    set_current_profile("default")


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run in an empty directory with no PLAID_* or MONEYHUB_* variables set."""
    for key in list(os.environ):
        if key.upper().startswith(("PLAID_", "MONEYHUB_")):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def aggregation_config() -> AggregationConfig:
    """Small pages and a short timeout suited to unit tests."""
    return AggregationConfig(max_workers=4, fetch_timeout=5.0, transactions_per_page=2)
