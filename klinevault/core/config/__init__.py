"""Configuration management module."""

from klinevault.core.config.settings import (
    ApiSettings,
    ArchiveSettings,
    DatabaseSettings,
    DirectorySettings,
    FetchSettings,
    KlineVaultSettings,
    LoggingSettings,
    load_settings,
)

__all__ = [
    "KlineVaultSettings",
    "load_settings",
    "ArchiveSettings",
    "FetchSettings",
    "DatabaseSettings",
    "DirectorySettings",
    "ApiSettings",
    "LoggingSettings",
]
