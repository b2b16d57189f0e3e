"""Domain-level error hierarchy for the ingestion pipeline."""

from __future__ import annotations

from typing import Any, Mapping

from klinevault.core.exceptions.base import KlineVaultError
from klinevault.core.exceptions.codes import ErrorCode


class DomainError(KlineVaultError):
    """Base domain error carrying the pipeline layer and standardised context."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        layer: str,
        retryable: bool = False,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        payload = dict(context or {})
        details = {**payload, "layer": layer, "retryable": retryable}
        super().__init__(message, code.value, details)
        self.code = code
        self.layer = layer
        self.retryable = retryable
        self.context = payload

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable payload representing the error."""

        return {
            "code": self.code.value,
            "message": self.message,
            "layer": self.layer,
            "retryable": self.retryable,
            "context": dict(self.context),
        }


class DirectoryUnavailable(DomainError):
    """The symbol directory could not be fetched or decoded. Fatal to a run."""

    def __init__(self, message: str, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.DIRECTORY_UNAVAILABLE, layer="directory", retryable=True, context=context)


class FetchFailed(DomainError):
    """An archive download ended with a non-success status or a transport error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        payload = dict(context or {})
        payload["status_code"] = status_code
        super().__init__(message, ErrorCode.FETCH_FAILED, layer="fetch", retryable=True, context=payload)
        self.status_code = status_code


class ParseError(DomainError):
    """Base class for archive extraction and row parsing failures."""

    def __init__(self, message: str, code: ErrorCode, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, code, layer="parse", retryable=False, context=context)


class ArchiveCorrupt(ParseError):
    """The cached zip container cannot be opened."""

    def __init__(self, message: str, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.ARCHIVE_CORRUPT, context)


class MissingEntry(ParseError):
    """The archive does not contain the expected CSV entry."""

    def __init__(self, message: str, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.MISSING_ENTRY, context)


class RowMalformed(ParseError):
    """A CSV row is too short or holds a non-numeric value."""

    def __init__(self, message: str, line_number: int, context: Mapping[str, Any] | None = None) -> None:
        payload = dict(context or {})
        payload["line_number"] = line_number
        super().__init__(message, ErrorCode.ROW_MALFORMED, payload)
        self.line_number = line_number


class PersistenceFailed(DomainError):
    """A partition batch could not be committed; the transaction was rolled back."""

    def __init__(self, message: str, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.PERSISTENCE_FAILED, layer="load", retryable=True, context=context)


class InvalidTransition(DomainError):
    """A cell was moved along an edge the lifecycle does not allow."""

    def __init__(self, source: str, target: str) -> None:
        super().__init__(
            f"illegal cell transition {source} -> {target}",
            ErrorCode.INVALID_TRANSITION,
            layer="orchestrator",
            context={"source": source, "target": target},
        )


__all__ = [
    "ArchiveCorrupt",
    "DirectoryUnavailable",
    "DomainError",
    "FetchFailed",
    "InvalidTransition",
    "MissingEntry",
    "ParseError",
    "PersistenceFailed",
    "RowMalformed",
]
