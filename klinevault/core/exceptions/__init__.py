"""Exception handling module."""

from klinevault.core.exceptions.base import ConfigurationError, KlineVaultError
from klinevault.core.exceptions.codes import ErrorCode
from klinevault.core.exceptions.domain import (
    ArchiveCorrupt,
    DirectoryUnavailable,
    DomainError,
    FetchFailed,
    InvalidTransition,
    MissingEntry,
    ParseError,
    PersistenceFailed,
    RowMalformed,
)

__all__ = [
    "KlineVaultError",
    "ConfigurationError",
    "DomainError",
    "ErrorCode",
    "DirectoryUnavailable",
    "FetchFailed",
    "ParseError",
    "ArchiveCorrupt",
    "MissingEntry",
    "RowMalformed",
    "PersistenceFailed",
    "InvalidTransition",
]
