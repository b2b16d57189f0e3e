"""klinevault base exception types."""

from typing import Any


class KlineVaultError(Exception):
    """Root of every error raised by klinevault."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        """Create the error.

        Args:
            message: human readable description
            error_code: stable machine readable code
            details: extra structured context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(KlineVaultError):
    """Settings could not be loaded or failed validation."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if source:
            super_details["source"] = source
        super().__init__(message, "CONFIGURATION_ERROR", super_details)
        self.source = source
