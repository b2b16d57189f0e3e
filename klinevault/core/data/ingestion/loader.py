"""Transactional persistence of candle batches."""

from __future__ import annotations

from collections.abc import Iterable  # noqa: TC003
from contextlib import suppress
from dataclasses import dataclass, field
from time import perf_counter
from typing import TYPE_CHECKING

import duckdb

from klinevault.core.data.ingestion.models import Candle
from klinevault.core.data.schema import CANDLES_TABLE, quote_identifier
from klinevault.core.exceptions import PersistenceFailed
from klinevault.core.logging import logger

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from klinevault.core.data.storage import DuckDBConnectionPool

_KEY = ("symbol", "interval", "open_time")

# Per-row columns of a batch, bound as one typed list each.
_VALUE_COLUMNS = (
    ("open_time", "BIGINT"),
    ("open", "DOUBLE"),
    ("high", "DOUBLE"),
    ("low", "DOUBLE"),
    ("close", "DOUBLE"),
    ("num_trades", "BIGINT"),
    ("volume", "DOUBLE"),
    ("taker_volume", "DOUBLE"),
)

INSERT_BATCH_SQL = (
    f"INSERT INTO {CANDLES_TABLE.name} "
    f"({', '.join(quote_identifier(c) for c in ('symbol', 'interval', *(name for name, _ in _VALUE_COLUMNS)))}) "
    f"SELECT ?, ?, {', '.join(f'UNNEST(?::{kind}[])' for _, kind in _VALUE_COLUMNS)} "
    f"ON CONFLICT ({', '.join(quote_identifier(c) for c in _KEY)}) DO NOTHING"
)
COUNT_EXISTING_SQL = (
    f"SELECT COUNT(*) FROM {CANDLES_TABLE.name} "
    f"WHERE symbol = ? AND {quote_identifier('interval')} = ? "
    "AND open_time BETWEEN ? AND ? "
    "AND open_time IN (SELECT UNNEST(?::BIGINT[]))"
)


@dataclass
class CandleColumns:
    """Column-oriented copy of a deduplicated batch, in file order."""

    open_time: list[int] = field(default_factory=list)
    open: list[float] = field(default_factory=list)
    high: list[float] = field(default_factory=list)
    low: list[float] = field(default_factory=list)
    close: list[float] = field(default_factory=list)
    num_trades: list[int] = field(default_factory=list)
    volume: list[float] = field(default_factory=list)
    taker_volume: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.open_time)

    def append(self, candle: Candle) -> None:
        for name, _ in _VALUE_COLUMNS:
            getattr(self, name).append(getattr(candle, name))

    def parameters(self) -> list[list[object]]:
        return [getattr(self, name) for name, _ in _VALUE_COLUMNS]


def _prepare_columns(records: Iterable[Candle], symbol: str, interval: str) -> CandleColumns:
    columns = CandleColumns()
    seen: set[int] = set()
    for index, candle in enumerate(records):
        if candle.symbol != symbol or candle.interval != interval:
            raise PersistenceFailed(
                f"record {index} belongs to {candle.symbol}/{candle.interval}, not {symbol}/{interval}",
                context={"symbol": symbol, "interval": interval},
            )
        # First occurrence of a key wins, as it would against stored rows.
        if candle.open_time in seen:
            continue
        seen.add(candle.open_time)
        columns.append(candle)
    return columns


def _rollback(conn: DuckDBPyConnection) -> None:
    # A commit that fails has already ended the transaction.
    with suppress(duckdb.TransactionException):
        conn.rollback()


class CandleLoader:
    """Persist candle batches for one ``(symbol, interval)`` partition at a time."""

    def __init__(self, pool: DuckDBConnectionPool) -> None:
        self._pool = pool

    def load_batch(self, records: Iterable[Candle], symbol: str, interval: str) -> int:
        """Insert ``records`` inside a single transaction and return the new row count.

        The batch is written with one set-based statement. Keys already stored
        are skipped, so repeating a batch persists nothing the second time.
        The returned count is the batch size minus the batch keys visible in
        the transaction's snapshot; a concurrent writer committing the same
        keys makes this commit fail instead of skewing the count. On any
        failure the whole batch is rolled back.

        Raises:
            PersistenceFailed: the batch was rejected or rolled back.
        """

        context = {"symbol": symbol, "interval": interval}
        columns = _prepare_columns(records, symbol, interval)
        if not columns:
            return 0

        start = perf_counter()
        keys = columns.open_time
        with self._pool.acquire() as conn:
            conn.begin()
            try:
                row = conn.execute(COUNT_EXISTING_SQL, [symbol, interval, min(keys), max(keys), keys]).fetchone()
                existing = int(row[0]) if row else 0
                conn.execute(INSERT_BATCH_SQL, [symbol, interval, *columns.parameters()])
                conn.commit()
            except duckdb.Error as exc:
                _rollback(conn)
                raise PersistenceFailed(f"batch of {len(columns)} rows rolled back: {exc}", context=context) from exc
            except BaseException:
                _rollback(conn)
                raise

        persisted = len(columns) - existing
        logger.debug(
            "Loaded {persisted}/{total} candles",
            persisted=persisted,
            total=len(columns),
            duration_ms=round((perf_counter() - start) * 1000, 2),
            **context,
        )
        return persisted


__all__ = ["CandleColumns", "CandleLoader", "INSERT_BATCH_SQL"]
