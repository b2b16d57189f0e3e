"""Application services built on top of the ingestion pipeline."""

from klinevault.core.services.backfill import (
    SymbolSource,
    download_historical,
    open_pool,
    populate_symbols,
)
from klinevault.core.services.symbols import PopulateResult, SymbolDirectory, stored_active

__all__ = [
    "PopulateResult",
    "SymbolDirectory",
    "SymbolSource",
    "download_historical",
    "open_pool",
    "populate_symbols",
    "stored_active",
]
