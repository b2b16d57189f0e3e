"""Helpers for creating DuckDB connections and a bounded connection pool."""

from __future__ import annotations

import queue
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import duckdb
from duckdb import DuckDBPyConnection

from klinevault.core.data.schema import ensure_schema
from klinevault.core.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import Path


@dataclass(frozen=True)
class DuckDBFactoryConfig:
    """Configuration applied to DuckDB connections produced by the factory."""

    database: str | Path = ":memory:"
    read_only: bool = False
    pragmas: Mapping[str, object] = field(default_factory=lambda: {"threads": 1})


class DuckDBFactory:
    """Factory that yields configured DuckDB connections."""

    def __init__(self, config: DuckDBFactoryConfig | None = None) -> None:
        self._config = config or DuckDBFactoryConfig()

    def create_connection(self) -> DuckDBPyConnection:
        """Create and return a configured DuckDB connection."""

        conn = duckdb.connect(database=str(self._config.database), read_only=self._config.read_only)
        self._apply_pragmas(conn)
        return conn

    def create_pool(self, size: int) -> DuckDBConnectionPool:
        """Open the database once and return a pool of ``size`` sibling connections."""

        return DuckDBConnectionPool(self.create_connection(), size)

    def _apply_pragmas(self, conn: DuckDBPyConnection) -> None:
        for setting, value in self._config.pragmas.items():
            conn.execute(f"SET {setting}=?", [value])


class DuckDBConnectionPool:
    """Fixed-size pool of connections sharing one DuckDB database instance.

    Each pooled connection is a cursor of the root connection, so all of them
    see the same (possibly in-memory) database while keeping independent
    transactions. A connection is held by exactly one borrower at a time.
    """

    def __init__(self, root: DuckDBPyConnection, size: int) -> None:
        if size <= 0:
            raise ValueError("pool size must be positive")
        self._root = root
        self._size = size
        self._idle: queue.LifoQueue[DuckDBPyConnection] = queue.LifoQueue(maxsize=size)
        self._members: list[DuckDBPyConnection] = []
        self._closed = False
        self._lock = threading.Lock()
        ensure_schema(root)
        for _ in range(size):
            conn = root.cursor()
            self._members.append(conn)
            self._idle.put(conn)
        logger.debug("DuckDB pool opened", pool_size=size)

    @property
    def size(self) -> int:
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def acquire(self, timeout: float | None = None) -> Iterator[DuckDBPyConnection]:
        """Borrow a connection, blocking until one is idle.

        Raises:
            RuntimeError: the pool is closed.
            queue.Empty: no connection became idle within ``timeout`` seconds.
        """

        if self._closed:
            raise RuntimeError("connection pool is closed")
        conn = self._idle.get(timeout=timeout)
        try:
            yield conn
        finally:
            self._idle.put(conn)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for conn in self._members:
            conn.close()
        self._root.close()
        logger.debug("DuckDB pool closed")

    def __enter__(self) -> DuckDBConnectionPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["DuckDBConnectionPool", "DuckDBFactory", "DuckDBFactoryConfig"]
