"""Wiring of settings, HTTP client, DuckDB pool and the ingestion pipeline."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import httpx

from klinevault import __version__
from klinevault.core.data.ingestion import (
    ArchiveFetcher,
    ArchiveLocator,
    CandleLoader,
    FetchRetryConfig,
    IngestionOrchestrator,
    IngestionReport,
)
from klinevault.core.data.storage import DuckDBFactory, DuckDBFactoryConfig
from klinevault.core.logging import logger
from klinevault.core.services.symbols import PopulateResult, SymbolDirectory, stored_active

if TYPE_CHECKING:
    from klinevault.core.config import KlineVaultSettings
    from klinevault.core.data.ingestion import Symbol
    from klinevault.core.data.storage import DuckDBConnectionPool


class SymbolSource(str, Enum):
    """Where the backfill reads its symbol list from."""

    REMOTE = "remote"
    STORE = "store"


def open_pool(settings: KlineVaultSettings) -> DuckDBConnectionPool:
    factory = DuckDBFactory(
        DuckDBFactoryConfig(database=settings.database.path, pragmas={"threads": settings.database.threads})
    )
    return factory.create_pool(settings.database.pool_size)


def http_client(timeout: float, max_connections: int | None = None) -> httpx.AsyncClient:
    limits = httpx.Limits(max_connections=max_connections) if max_connections else httpx.Limits()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        limits=limits,
        follow_redirects=True,
        headers={"User-Agent": f"klinevault/{__version__}"},
    )


async def populate_symbols(settings: KlineVaultSettings) -> PopulateResult:
    """Fetch the exchange directory once and store every symbol."""

    with open_pool(settings) as pool:
        async with http_client(settings.directory.timeout) as client:
            directory = SymbolDirectory(client, settings.directory.exchange_info_url)
            return await directory.populate(pool)


async def resolve_symbols(
    settings: KlineVaultSettings,
    source: SymbolSource,
    pool: DuckDBConnectionPool,
) -> list[Symbol]:
    """Return the trading symbols from the chosen source.

    Raises:
        DirectoryUnavailable: the remote directory could not be read.
    """

    if source is SymbolSource.STORE:
        symbols = stored_active(pool)
        logger.info("Read {count} trading symbols from the store", count=len(symbols))
        return symbols
    async with http_client(settings.directory.timeout) as client:
        return await SymbolDirectory(client, settings.directory.exchange_info_url).fetch_active()


async def download_historical(
    settings: KlineVaultSettings,
    source: SymbolSource = SymbolSource.REMOTE,
    only: list[str] | None = None,
) -> IngestionReport:
    """Backfill every archive cell of every trading symbol into the store."""

    fetch = settings.fetch
    locator = ArchiveLocator(settings.archive.layout())
    with open_pool(settings) as pool:
        symbols = await resolve_symbols(settings, source, pool)
        if only:
            wanted = {code.upper() for code in only}
            symbols = [symbol for symbol in symbols if symbol.symbol in wanted]

        async with http_client(fetch.timeout, max_connections=fetch.max_concurrent_fetches) as client:
            fetcher = ArchiveFetcher(
                client,
                locator,
                retry=FetchRetryConfig(max_retries=fetch.max_retries, backoff_factor=fetch.backoff_factor),
                chunk_size=fetch.chunk_size,
            )
            orchestrator = IngestionOrchestrator(
                locator,
                fetcher,
                CandleLoader(pool),
                max_concurrent_fetches=fetch.max_concurrent_fetches,
                max_concurrent_loads=pool.size,
            )
            return await orchestrator.run(symbols)


__all__ = [
    "SymbolSource",
    "download_historical",
    "http_client",
    "open_pool",
    "populate_symbols",
    "resolve_symbols",
]
