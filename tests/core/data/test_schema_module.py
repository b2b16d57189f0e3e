from __future__ import annotations

import duckdb
import pytest

from klinevault.core.data.schema import CANDLES_TABLE, SYMBOLS_TABLE, ensure_schema, quote_identifier


@pytest.fixture
def conn() -> duckdb.DuckDBPyConnection:
    connection = duckdb.connect()
    yield connection
    connection.close()


def _columns(conn: duckdb.DuckDBPyConnection, table: str) -> list[str]:
    rows = conn.execute(
        "SELECT column_name FROM information_schema.columns WHERE table_name = ? ORDER BY ordinal_position",
        [table],
    ).fetchall()
    return [row[0] for row in rows]


def test_ensure_schema_creates_tables(conn: duckdb.DuckDBPyConnection) -> None:
    ensure_schema(conn)
    ensure_schema(conn)

    assert _columns(conn, "symbols") == list(SYMBOLS_TABLE.column_names)
    assert _columns(conn, "candles") == list(CANDLES_TABLE.column_names)


def test_symbols_primary_key(conn: duckdb.DuckDBPyConnection) -> None:
    ensure_schema(conn)
    conn.execute("INSERT INTO symbols VALUES ('BTCUSDT', 'TRADING', 'BTC', 'USDT')")

    with pytest.raises(duckdb.ConstraintException):
        conn.execute("INSERT INTO symbols VALUES ('BTCUSDT', 'BREAK', 'BTC', 'USDT')")


def test_candles_composite_primary_key(conn: duckdb.DuckDBPyConnection) -> None:
    ensure_schema(conn)
    insert = 'INSERT INTO candles VALUES (?, ?, ?, 1, 1, 1, 1, 1, 1, 1)'
    conn.execute(insert, ["BTCUSDT", "1h", 1])
    conn.execute(insert, ["BTCUSDT", "1d", 1])

    with pytest.raises(duckdb.ConstraintException):
        conn.execute(insert, ["BTCUSDT", "1h", 1])


def test_quote_identifier_escapes_quotes() -> None:
    assert quote_identifier("interval") == '"interval"'
    assert quote_identifier('we"ird') == '"we""ird"'
    assert '"interval" VARCHAR NOT NULL' in CANDLES_TABLE.create_ddl()
