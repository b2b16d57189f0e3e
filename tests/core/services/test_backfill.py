from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from klinevault.core.config import KlineVaultSettings
from klinevault.core.data.ingestion import CellState
from klinevault.core.exceptions import DirectoryUnavailable
from klinevault.core.services import SymbolSource, backfill, download_historical, open_pool, populate_symbols

EXCHANGE_INFO = "https://api.exchange.test/api/v3/exchangeInfo"
ARCHIVE_BASE = "https://archive.test/klines"

SYMBOLS = {
    "symbols": [
        {"symbol": "BTCUSDT", "status": "TRADING", "baseAsset": "BTC", "quoteAsset": "USDT"},
        {"symbol": "ETHUSDT", "status": "TRADING", "baseAsset": "ETH", "quoteAsset": "USDT"},
        {"symbol": "OLDBTC", "status": "BREAK", "baseAsset": "OLD", "quoteAsset": "BTC"},
    ]
}


@pytest.fixture
def settings(tmp_path: Path) -> KlineVaultSettings:
    return KlineVaultSettings(
        archive={
            "base_url": ARCHIVE_BASE,
            "cache_root": tmp_path / "history",
            "intervals": ["1d"],
            "first_year": 2021,
            "last_year": 2021,
        },
        database={"path": str(tmp_path / "store.duckdb"), "pool_size": 2, "threads": 1},
        directory={"exchange_info_url": EXCHANGE_INFO},
        fetch={"max_concurrent_fetches": 4, "max_retries": 0},
    )


@pytest.fixture
def requests(monkeypatch: pytest.MonkeyPatch, archive_builder, row_builder) -> list[str]:
    """Route every client built by the backfill service to an in-process exchange."""

    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        seen.append(url)
        if url == EXCHANGE_INFO:
            return httpx.Response(200, json=SYMBOLS)
        stem = url.rsplit("/", 1)[-1].removesuffix(".zip")
        symbol, _interval, _year, month = stem.split("-")
        if symbol != "BTCUSDT" or int(month) > 6:
            return httpx.Response(404)
        rows = [row_builder(int(month) * 1000 + day) for day in range(28)]
        return httpx.Response(200, content=archive_builder(f"{stem}.csv", rows))

    def mock_client(timeout: float, max_connections: int | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    monkeypatch.setattr(backfill, "http_client", mock_client)
    return seen


@pytest.mark.asyncio
async def test_download_historical_backfills_trading_symbols(settings: KlineVaultSettings, requests: list[str]) -> None:
    report = await download_historical(settings)

    assert report.total_cells == 2 * 12
    assert report.outcomes[CellState.LOADED] == 6
    assert report.outcomes[CellState.NOT_FOUND] == 18
    assert report.rows_persisted == 6 * 28
    assert not any("OLDBTC" in url for url in requests)

    with open_pool(settings) as pool, pool.acquire() as conn:
        assert conn.execute("SELECT COUNT(DISTINCT symbol) FROM candles").fetchone()[0] == 1


@pytest.mark.asyncio
async def test_download_historical_restricted_to_selected_symbols(
    settings: KlineVaultSettings, requests: list[str]
) -> None:
    report = await download_historical(settings, only=["ethusdt"])

    assert report.total_cells == 12
    assert report.outcomes[CellState.NOT_FOUND] == 12
    assert not any("BTCUSDT" in url for url in requests)


@pytest.mark.asyncio
async def test_store_source_uses_populated_symbols(settings: KlineVaultSettings, requests: list[str]) -> None:
    result = await populate_symbols(settings)
    assert result.inserted == ["BTCUSDT", "ETHUSDT", "OLDBTC"]
    requests.clear()

    report = await download_historical(settings, SymbolSource.STORE)

    assert report.total_cells == 24
    assert EXCHANGE_INFO not in requests


@pytest.mark.asyncio
async def test_unavailable_directory_aborts_run(settings: KlineVaultSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_client(timeout: float, max_connections: int | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    monkeypatch.setattr(backfill, "http_client", failing_client)

    with pytest.raises(DirectoryUnavailable):
        await download_historical(settings)
