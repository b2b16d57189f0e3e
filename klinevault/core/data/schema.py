"""Table definitions for the symbol directory and candle store."""

from __future__ import annotations

from collections.abc import Sequence  # noqa: TC003
from dataclasses import dataclass

from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class ColumnDef:
    """Represents a DuckDB table column definition."""

    name: str
    data_type: str
    constraints: Sequence[str] = ()

    def render(self) -> str:
        parts = [quote_identifier(self.name), self.data_type, *self.constraints]
        return " ".join(parts)


@dataclass(frozen=True)
class TableSchema:
    """Utility wrapper describing a DuckDB table schema."""

    name: str
    columns: Sequence[ColumnDef]
    primary_key: Sequence[str] = ()

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def create_ddl(self) -> str:
        column_defs: list[str] = [column.render() for column in self.columns]
        if self.primary_key:
            pk_cols = ", ".join(quote_identifier(col) for col in self.primary_key)
            column_defs.append(f"PRIMARY KEY ({pk_cols})")
        columns_sql = ",\n                ".join(column_defs)
        return f"""
            CREATE TABLE IF NOT EXISTS {self.name} (
                {columns_sql}
            )
            """.strip()

    def ensure(self, conn: DuckDBPyConnection) -> None:
        """Create the table on the provided connection if it does not exist."""

        conn.execute(self.create_ddl())


def quote_identifier(name: str) -> str:
    """Quote ``name`` so keywords such as ``interval`` are usable as column names."""

    return '"' + name.replace('"', '""') + '"'


SYMBOLS_TABLE = TableSchema(
    name="symbols",
    columns=(
        ColumnDef("symbol", "VARCHAR", ("NOT NULL",)),
        ColumnDef("status", "VARCHAR", ("NOT NULL",)),
        ColumnDef("base_asset", "VARCHAR", ("NOT NULL",)),
        ColumnDef("quote_asset", "VARCHAR", ("NOT NULL",)),
    ),
    primary_key=("symbol",),
)

CANDLES_TABLE = TableSchema(
    name="candles",
    columns=(
        ColumnDef("symbol", "VARCHAR", ("NOT NULL",)),
        ColumnDef("interval", "VARCHAR", ("NOT NULL",)),
        ColumnDef("open_time", "BIGINT", ("NOT NULL",)),
        ColumnDef("open", "DOUBLE", ("NOT NULL",)),
        ColumnDef("high", "DOUBLE", ("NOT NULL",)),
        ColumnDef("low", "DOUBLE", ("NOT NULL",)),
        ColumnDef("close", "DOUBLE", ("NOT NULL",)),
        ColumnDef("num_trades", "BIGINT", ("NOT NULL",)),
        ColumnDef("volume", "DOUBLE", ("NOT NULL",)),
        ColumnDef("taker_volume", "DOUBLE", ("NOT NULL",)),
    ),
    primary_key=("symbol", "interval", "open_time"),
)

ALL_TABLES: tuple[TableSchema, ...] = (SYMBOLS_TABLE, CANDLES_TABLE)


def ensure_schema(conn: DuckDBPyConnection) -> None:
    """Create every klinevault table that does not exist yet."""

    for table in ALL_TABLES:
        table.ensure(conn)


__all__ = [
    "ALL_TABLES",
    "CANDLES_TABLE",
    "ColumnDef",
    "SYMBOLS_TABLE",
    "TableSchema",
    "ensure_schema",
    "quote_identifier",
]
