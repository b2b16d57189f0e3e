"""Historical kline ingestion: locate, fetch, parse, load and orchestrate."""

from __future__ import annotations

from klinevault.core.data.ingestion.fetcher import ArchiveFetcher, FetchRetryConfig
from klinevault.core.data.ingestion.lifecycle import CellFailure, CellRun, CellState, IngestionReport
from klinevault.core.data.ingestion.loader import CandleLoader
from klinevault.core.data.ingestion.locator import ArchiveLayout, ArchiveLocator
from klinevault.core.data.ingestion.models import (
    ArchiveCell,
    ArchiveLocation,
    Candle,
    FetchOutcome,
    FetchStatus,
    Symbol,
)
from klinevault.core.data.ingestion.orchestrator import IngestionOrchestrator
from klinevault.core.data.ingestion.parser import CandleArchive, parse_archive, parse_row

__all__ = [
    "ArchiveCell",
    "ArchiveFetcher",
    "ArchiveLayout",
    "ArchiveLocation",
    "ArchiveLocator",
    "Candle",
    "CandleArchive",
    "CandleLoader",
    "CellFailure",
    "CellRun",
    "CellState",
    "FetchOutcome",
    "FetchRetryConfig",
    "FetchStatus",
    "IngestionOrchestrator",
    "IngestionReport",
    "Symbol",
    "parse_archive",
    "parse_row",
]
