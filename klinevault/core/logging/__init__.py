"""Logging utilities for monitoring and debugging."""

from klinevault.core.logging.config import LogConfig
from klinevault.core.logging.logger import (
    configure_logging,
    log_context,
    logger,
)

__all__ = [
    "LogConfig",
    "configure_logging",
    "log_context",
    "logger",
]
