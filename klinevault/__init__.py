"""klinevault - historical candlestick backfill into a relational store.

Downloads monthly kline archives for every trading symbol, parses the
embedded CSV rows and loads them idempotently into DuckDB.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
