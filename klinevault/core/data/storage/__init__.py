"""DuckDB connection management."""

from klinevault.core.data.storage.duckdb_factory import (
    DuckDBConnectionPool,
    DuckDBFactory,
    DuckDBFactoryConfig,
)

__all__ = ["DuckDBConnectionPool", "DuckDBFactory", "DuckDBFactoryConfig"]
