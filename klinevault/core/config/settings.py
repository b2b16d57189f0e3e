"""
Configuration management for klinevault.

Settings are resolved from (lowest to highest precedence) the field defaults,
an optional TOML file and ``KLINEVAULT_*`` environment variables. Nested
sections use ``__`` as delimiter, e.g. ``KLINEVAULT_FETCH__MAX_CONCURRENT_FETCHES=10``.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from klinevault.core.data.ingestion.locator import DEFAULT_INTERVALS, ArchiveLayout
from klinevault.core.exceptions import ConfigurationError

BINANCE_MONTHLY_KLINES = "https://data.binance.vision/data/spot/monthly/klines"
BINANCE_EXCHANGE_INFO = "https://api.binance.com/api/v3/exchangeInfo"


class ArchiveSettings(BaseModel):
    """Where archives come from, where they are cached and which cells exist."""

    base_url: str = Field(BINANCE_MONTHLY_KLINES, description="Monthly kline archive root")
    cache_root: Path = Field(Path("history"), description="Local archive cache directory")
    intervals: tuple[str, ...] = Field(DEFAULT_INTERVALS, description="Kline intervals to backfill")
    first_year: int = Field(2017, description="First year of the matrix (inclusive)")
    last_year: int = Field(2024, description="Last year of the matrix (inclusive)")

    @model_validator(mode="after")
    def _check_years(self) -> ArchiveSettings:
        if self.first_year > self.last_year:
            raise ValueError("first_year must not be after last_year")
        if not self.intervals:
            raise ValueError("at least one interval is required")
        return self

    def layout(self) -> ArchiveLayout:
        """Freeze the section into the value consumed by the archive locator."""

        return ArchiveLayout(
            base_url=self.base_url,
            cache_root=self.cache_root,
            intervals=tuple(self.intervals),
            years=tuple(range(self.first_year, self.last_year + 1)),
        )


class FetchSettings(BaseModel):
    """Archive download behaviour."""

    max_concurrent_fetches: int = Field(30, gt=0, description="Fetch workers / in-flight downloads")
    timeout: float = Field(60.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(2, ge=0, description="Retries for transient failures")
    backoff_factor: float = Field(1.0, ge=0, description="Exponential backoff base delay")
    chunk_size: int = Field(64 * 1024, gt=0, description="Streaming chunk size in bytes")


class DatabaseSettings(BaseModel):
    """DuckDB storage."""

    path: str = Field("klinevault.duckdb", description="DuckDB database file or :memory:")
    pool_size: int = Field(4, gt=0, description="Pooled connections for loader transactions")
    threads: int = Field(4, gt=0, description="DuckDB worker threads")


class DirectorySettings(BaseModel):
    """Symbol directory endpoint."""

    exchange_info_url: str = Field(BINANCE_EXCHANGE_INFO, description="Exchange metadata endpoint")
    timeout: float = Field(30.0, gt=0, description="Request timeout in seconds")


class ApiSettings(BaseModel):
    """HTTP stub server."""

    host: str = Field("127.0.0.1", description="Bind host")
    port: int = Field(8000, description="Bind port")
    cors_origin: str | None = Field(None, description="Allowed CORS origin")


class LoggingSettings(BaseModel):
    """Logging sinks."""

    level: str = Field("INFO", description="Log level")
    file_path: str | None = Field(None, description="Optional JSON-lines log file")


class KlineVaultSettings(BaseSettings):
    """Main klinevault configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KLINEVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    directory: DirectorySettings = Field(default_factory=DirectorySettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"config file {path} does not exist", source=str(path)) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"config file {path} is not valid TOML: {exc}", source=str(path)) from exc


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(path: Path | None = None, **overrides: Any) -> KlineVaultSettings:
    """Build settings from an optional TOML file, the environment and overrides.

    Environment variables win over the file; explicit ``overrides`` win over both.

    Raises:
        ConfigurationError: the file is missing or malformed, or a value is invalid.
    """

    try:
        env_settings = KlineVaultSettings()
        if path is None and not overrides:
            return env_settings

        file_values = _read_toml(path) if path is not None else {}
        env_values = env_settings.model_dump(exclude_unset=True)
        merged = _deep_merge(_deep_merge(file_values, env_values), overrides)
        return KlineVaultSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}", source=str(path) if path else "environment") from exc


__all__ = [
    "ApiSettings",
    "ArchiveSettings",
    "DatabaseSettings",
    "DirectorySettings",
    "FetchSettings",
    "KlineVaultSettings",
    "LoggingSettings",
    "load_settings",
]
