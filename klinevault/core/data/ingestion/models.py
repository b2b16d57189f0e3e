"""Data models shared by the ingestion pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path  # noqa: TC003

TRADING_STATUS = "TRADING"


@dataclass(slots=True, frozen=True)
class Symbol:
    """A trading pair as listed by the exchange directory."""

    symbol: str
    status: str
    base_asset: str
    quote_asset: str

    @property
    def is_trading(self) -> bool:
        return self.status == TRADING_STATUS


@dataclass(slots=True, frozen=True)
class Candle:
    """One OHLCV observation keyed by ``(symbol, interval, open_time)``."""

    symbol: str
    interval: str
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    taker_volume: float
    num_trades: int


@dataclass(slots=True, frozen=True)
class ArchiveCell:
    """Unit of work: one monthly archive for one symbol and interval."""

    symbol: str
    interval: str
    year: int
    month: int

    @property
    def partition(self) -> tuple[str, str]:
        return (self.symbol, self.interval)

    def describe(self) -> dict[str, object]:
        """Context attached to every log line and failure about this cell."""

        return {"symbol": self.symbol, "interval": self.interval, "year": self.year, "month": self.month}

    def __str__(self) -> str:
        return f"{self.symbol}-{self.interval}-{self.year}-{self.month:02d}"


@dataclass(slots=True, frozen=True)
class ArchiveLocation:
    """Remote and local coordinates of a cell's archive."""

    url: str
    path: Path
    entry_name: str


class FetchStatus(str, Enum):
    """Outcome of a single archive fetch."""

    CACHED = "cached"
    DOWNLOADED = "downloaded"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class FetchOutcome:
    """Result returned by the fetcher for one cell."""

    status: FetchStatus
    http_status: int | None = None
    bytes_written: int = 0
    error: str | None = None

    @property
    def has_data(self) -> bool:
        return self.status in (FetchStatus.CACHED, FetchStatus.DOWNLOADED)

    @classmethod
    def cached(cls) -> FetchOutcome:
        return cls(FetchStatus.CACHED)

    @classmethod
    def downloaded(cls, http_status: int, bytes_written: int) -> FetchOutcome:
        return cls(FetchStatus.DOWNLOADED, http_status=http_status, bytes_written=bytes_written)

    @classmethod
    def not_found(cls) -> FetchOutcome:
        return cls(FetchStatus.NOT_FOUND, http_status=404)

    @classmethod
    def failed(cls, http_status: int | None, error: str) -> FetchOutcome:
        return cls(FetchStatus.FAILED, http_status=http_status, error=error)


__all__ = [
    "TRADING_STATUS",
    "ArchiveCell",
    "ArchiveLocation",
    "Candle",
    "FetchOutcome",
    "FetchStatus",
    "Symbol",
]
