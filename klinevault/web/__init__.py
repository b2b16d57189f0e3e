"""HTTP API stub and error responses."""

from klinevault.web.app import create_app, serve
from klinevault.web.errors import ApiError, ErrorKind, FieldErrors, api_error

__all__ = ["ApiError", "ErrorKind", "FieldErrors", "api_error", "create_app", "serve"]
