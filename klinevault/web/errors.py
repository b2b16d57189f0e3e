"""
API error responses.

Handlers convert internal failures into an :class:`ApiError` explicitly, via
:func:`api_error`, which logs the internal cause together with the supplied
context and returns an error that only exposes the public message and any
field errors to the client.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from klinevault.core.exceptions import KlineVaultError
from klinevault.core.logging import logger


class ErrorKind(str, Enum):
    """Classes of API failure and the HTTP status each maps to."""

    INTERNAL = "internal"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.INTERNAL: 500,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAVAILABLE: 503,
}

DEFAULT_PUBLIC_MESSAGES = {
    ErrorKind.INTERNAL: "Internal server error",
    ErrorKind.NOT_FOUND: "Record not found",
    ErrorKind.VALIDATION: "Unable to save record",
    ErrorKind.CONFLICT: "Record already exists",
    ErrorKind.UNAVAILABLE: "Service temporarily unavailable",
}


class FieldErrors:
    """Per-field validation messages collected before failing a request."""

    def __init__(self) -> None:
        self._errors: dict[str, list[str]] = {}

    def add_error(self, field: str, message: str) -> None:
        self._errors.setdefault(field, []).append(message)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def to_dict(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._errors.items()}

    def raise_if_any(self, public_message: str | None = None) -> None:
        """Raise a validation :class:`ApiError` when at least one field error exists."""

        if self:
            raise ApiError(ErrorKind.VALIDATION, public_message, field_errors=self)


class ApiError(KlineVaultError):
    """Error with a client-safe message, an HTTP status and optional field errors."""

    def __init__(
        self,
        kind: ErrorKind,
        public_message: str | None = None,
        *,
        field_errors: FieldErrors | None = None,
        status_code: int | None = None,
    ) -> None:
        message = public_message or DEFAULT_PUBLIC_MESSAGES[kind]
        super().__init__(message, f"API_{kind.value.upper()}")
        self.kind = kind
        self.public_message = message
        self.status_code = status_code or kind.status_code
        self.field_errors = field_errors.to_dict() if field_errors else None


class ApiErrorBody(BaseModel):
    """Serialized error body returned to API clients."""

    message: str
    field_errors: dict[str, list[str]] | None = None


def api_error(
    exc: BaseException,
    *,
    kind: ErrorKind = ErrorKind.INTERNAL,
    public_message: str | None = None,
    context: str | None = None,
    level: str = "ERROR",
    **extra: Any,
) -> ApiError:
    """Log ``exc`` with ``context`` and return the :class:`ApiError` to raise for it.

    Usage::

        try:
            rows = load(...)
        except duckdb.Error as exc:
            raise api_error(exc, public_message="Unable to save record", context="loading candles") from exc
    """

    if isinstance(exc, ApiError):
        return exc
    event = f"{context}: {exc}" if context else str(exc)
    error_code = exc.error_code if isinstance(exc, KlineVaultError) else type(exc).__name__
    bound = logger.bind(error_code=error_code, stage="api", **extra)
    bound.opt(exception=exc if level == "ERROR" else None).log(level, "{}", event)
    return ApiError(kind, public_message)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    body = ApiErrorBody(message=exc.public_message, field_errors=exc.field_errors)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


__all__ = [
    "ApiError",
    "ApiErrorBody",
    "ErrorKind",
    "FieldErrors",
    "api_error",
    "api_error_handler",
]
