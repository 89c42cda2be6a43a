"""Configuration for MoneyHub.

``MoneyHubSettings`` is read once per process (per profile) and then handed
to ``create_services``; the gateway, resolver and services receive their own
section and never read the environment themselves.

Sources, highest priority first:
    1. keyword arguments
    2. ``MONEYHUB_*`` environment variables (``__`` separates nested sections,
       e.g. ``MONEYHUB_AGGREGATION__MAX_WORKERS=4``)
    3. ``.env.{profile}``, or ``.env`` when the profile has no file
    4. field defaults

``PLAID_CLIENT_ID``, ``PLAID_SECRET`` and ``PLAID_ENV`` are still honored
when no ``plaid`` section was given any other way.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

PlaidEnvironment = Literal["sandbox", "development", "production"]
PLAID_ENVIRONMENTS: tuple[str, ...] = ("sandbox", "development", "production")

DEFAULT_PROFILE = "default"
_PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def check_profile_name(profile: str) -> str:
    """Return ``profile`` if it is usable in a ``.env.{profile}`` filename.

    Raises:
        ValueError: If the name is empty or has characters other than
            letters, digits, dashes and underscores
    """
    if not profile:
        raise ValueError("Profile name cannot be empty")
    if not _PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. Use only letters, digits, dashes "
            "and underscores"
        )
    return profile


def profile_env_file(profile: str) -> Path:
    """The dotenv file a profile reads: ``.env.{profile}`` if present, else ``.env``."""
    candidate = Path(f".env.{profile}")
    return candidate if candidate.exists() else Path(".env")


class PlaidConfig(BaseModel):
    """Credentials and request behavior for the Plaid gateway."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="Plaid client ID")
    secret: str = Field(..., description="Plaid secret", repr=False)
    environment: PlaidEnvironment = "sandbox"
    country_codes: tuple[str, ...] = Field(
        default=("US",), description="Countries passed to institution lookups"
    )
    request_timeout: float = Field(
        default=15.0, gt=0, le=120.0, description="Seconds per Plaid request"
    )
    max_retries: int = Field(
        default=3, ge=0, le=10, description="Retries while a product is not ready"
    )
    retry_delay: float = Field(default=1.0, ge=0.0, le=10.0)
    sync_page_size: int = Field(
        default=100, ge=1, le=500, description="Transactions per sync page"
    )
    max_sync_pages: int = Field(
        default=50, ge=1, le=1000, description="Sync pages read per connection"
    )


class DatabaseConfig(BaseModel):
    """Location of the DuckDB store holding connections and transfers."""

    model_config = ConfigDict(frozen=True)

    path: Path = Path("data/duckdb/moneyhub.duckdb")
    create_dirs: bool = Field(
        default=True, description="Create the store's parent directory on load"
    )

    @field_validator("path")
    @classmethod
    def check_extension(cls, v: Path) -> Path:
        if v.suffix not in (".db", ".duckdb"):
            raise ValueError("Database path must end with .db or .duckdb")
        return v


class AggregationConfig(BaseModel):
    """Fan-out and paging settings for the aggregation services."""

    model_config = ConfigDict(frozen=True)

    max_workers: int = Field(
        default=8, ge=1, le=64, description="Connections fetched concurrently"
    )
    fetch_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300.0,
        description="Seconds to wait for one connection's snapshot",
    )
    transactions_per_page: int = Field(default=10, ge=1, le=500)
    cache_institutions: bool = True


class LoggingSettings(BaseModel):
    """Log level and optional log file."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_to_file: bool = False
    log_file_path: Path = Path("logs/moneyhub.log")


class MoneyHubSettings(BaseSettings):
    """Settings for one profile. See the module docstring for sources."""

    model_config = SettingsConfigDict(
        env_prefix="MONEYHUB_",
        env_nested_delimiter="__",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    plaid: PlaidConfig = Field(
        default_factory=lambda: PlaidConfig(client_id="", secret="")
    )
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    user_id: str | None = Field(
        default=None, description="User whose session the CLI acts for"
    )
    profile: str = DEFAULT_PROFILE

    @field_validator("profile")
    @classmethod
    def check_profile(cls, v: str) -> str:
        return check_profile_name(v)

    @model_validator(mode="before")
    @classmethod
    def fill_legacy_plaid(cls, data: Any) -> Any:
        """Build ``plaid`` from PLAID_* variables when nothing else set it."""
        if not isinstance(data, dict) or "plaid" in data:
            return data

        client_id = os.getenv("PLAID_CLIENT_ID")
        secret = os.getenv("PLAID_SECRET")
        if client_id and secret:
            plaid: dict[str, str] = {"client_id": client_id, "secret": secret}
            environment = os.getenv("PLAID_ENV", "sandbox")
            if environment in PLAID_ENVIRONMENTS:
                plaid["environment"] = environment
            data = {**data, "plaid": plaid}
        return data

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # The dotenv file depends on the profile passed as a keyword argument
        init_kwargs: dict[str, Any] = getattr(init_settings, "init_kwargs", {})
        profile = init_kwargs.get("profile") or DEFAULT_PROFILE
        profile_dotenv = DotEnvSettingsSource(
            settings_cls, env_file=profile_env_file(profile)
        )
        return init_settings, env_settings, profile_dotenv, file_secret_settings

    def missing_credentials(self) -> list[str]:
        """Names of the Plaid credentials that are not set."""
        missing: list[str] = []
        if not self.plaid.client_id:
            missing.append("PLAID_CLIENT_ID")
        if not self.plaid.secret:
            missing.append("PLAID_SECRET")
        return missing

    def validate_required_credentials(self) -> None:
        """Raise ValueError naming every missing Plaid credential."""
        missing = self.missing_credentials()
        if missing:
            raise ValueError(
                "Missing required configuration: "
                + ", ".join(f"{name} is required" for name in missing)
            )

    def create_directories(self) -> None:
        """Create the parent directories of the store and the log file."""
        self.database.path.parent.mkdir(parents=True, exist_ok=True)
        if self.logging.log_to_file:
            self.logging.log_file_path.parent.mkdir(parents=True, exist_ok=True)


_settings_by_profile: dict[str, MoneyHubSettings] = {}
_active_profile: str = DEFAULT_PROFILE


def get_settings(profile: str | None = None) -> MoneyHubSettings:
    """Load (once) and return the settings for ``profile``.

    Args:
        profile: Profile to load. Defaults to the active profile.

    Returns:
        MoneyHubSettings: Cached settings with Plaid credentials present

    Raises:
        ValueError: If the profile's settings are invalid or lack credentials
    """
    profile = profile or _active_profile
    cached = _settings_by_profile.get(profile)
    if cached is not None:
        return cached

    try:
        settings = MoneyHubSettings(profile=profile)
        settings.validate_required_credentials()
        if settings.database.create_dirs:
            settings.create_directories()
    except Exception as e:
        raise ValueError(f"Configuration error for profile '{profile}': {e}") from e

    _settings_by_profile[profile] = settings
    return settings


def set_current_profile(profile: str) -> None:
    """Make ``profile`` the one ``get_settings()`` loads by default.

    Raises:
        ValueError: If the profile name is not usable
    """
    global _active_profile

    _active_profile = check_profile_name(profile)


def get_current_profile() -> str:
    return _active_profile


def reload_settings(profile: str | None = None) -> MoneyHubSettings:
    """Discard the cached settings for ``profile`` and load them again."""
    profile = profile or _active_profile
    _settings_by_profile.pop(profile, None)
    return get_settings(profile)


def clear_settings_cache() -> None:
    _settings_by_profile.clear()
