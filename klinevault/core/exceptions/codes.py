"""Standardised error codes shared by the ingestion pipeline and the API."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable identifiers attached to every :class:`KlineVaultError`."""

    GENERAL_ERROR = "GENERAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    DIRECTORY_UNAVAILABLE = "DIRECTORY_UNAVAILABLE"
    FETCH_FAILED = "FETCH_FAILED"
    ARCHIVE_CORRUPT = "ARCHIVE_CORRUPT"
    MISSING_ENTRY = "MISSING_ENTRY"
    ROW_MALFORMED = "ROW_MALFORMED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    INVALID_TRANSITION = "INVALID_TRANSITION"


__all__ = ["ErrorCode"]
