"""Symbol directory backed by the exchange metadata endpoint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import duckdb
import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from klinevault.core.data.ingestion.models import TRADING_STATUS, Symbol
from klinevault.core.data.schema import SYMBOLS_TABLE
from klinevault.core.exceptions import DirectoryUnavailable
from klinevault.core.logging import logger

if TYPE_CHECKING:
    from klinevault.core.data.storage import DuckDBConnectionPool


class SymbolPayload(BaseModel):
    """One entry of the exchange ``symbols`` array."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    symbol: str
    status: str
    base_asset: str = Field(alias="baseAsset")
    quote_asset: str = Field(alias="quoteAsset")

    def to_symbol(self) -> Symbol:
        return Symbol(self.symbol, self.status, self.base_asset, self.quote_asset)


class ExchangeInfoPayload(BaseModel):
    """Subset of the exchange metadata document used by the directory."""

    model_config = ConfigDict(extra="ignore")

    symbols: list[SymbolPayload]


@dataclass
class PopulateResult:
    """Counts reported by :meth:`SymbolDirectory.populate`."""

    inserted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class SymbolDirectory:
    """Source of the symbols that take part in ingestion."""

    def __init__(self, client: httpx.AsyncClient, exchange_info_url: str) -> None:
        self._client = client
        self._url = exchange_info_url

    async def fetch_all(self) -> list[Symbol]:
        """Return every symbol listed by the exchange.

        Raises:
            DirectoryUnavailable: the request failed or the body did not decode.
        """

        context = {"url": self._url}
        try:
            response = await self._client.get(self._url)
            response.raise_for_status()
            payload = ExchangeInfoPayload.model_validate_json(response.content)
        except httpx.HTTPStatusError as exc:
            raise DirectoryUnavailable(
                f"exchange info returned HTTP {exc.response.status_code}",
                context={**context, "status_code": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise DirectoryUnavailable(f"exchange info request failed: {exc}", context=context) from exc
        except ValidationError as exc:
            raise DirectoryUnavailable(f"exchange info could not be decoded: {exc}", context=context) from exc

        return [entry.to_symbol() for entry in payload.symbols]

    async def fetch_active(self) -> list[Symbol]:
        """Return the symbols whose status is ``TRADING``."""

        symbols = [symbol for symbol in await self.fetch_all() if symbol.is_trading]
        logger.info("Symbol directory lists {count} trading symbols", count=len(symbols))
        return symbols

    async def populate(self, pool: DuckDBConnectionPool) -> PopulateResult:
        """Insert every listed symbol; already known symbols are skipped with a warning."""

        symbols = await self.fetch_all()
        result = PopulateResult()
        with pool.acquire() as conn:
            for symbol in symbols:
                try:
                    conn.execute(
                        f"INSERT INTO {SYMBOLS_TABLE.name} (symbol, status, base_asset, quote_asset) "
                        "VALUES (?, ?, ?, ?)",
                        [symbol.symbol, symbol.status, symbol.base_asset, symbol.quote_asset],
                    )
                except duckdb.ConstraintException:
                    logger.warning("{symbol} already exists in database.", symbol=symbol.symbol)
                    result.skipped.append(symbol.symbol)
                    continue
                logger.debug("Saved symbol {symbol}", symbol=symbol.symbol)
                result.inserted.append(symbol.symbol)

        logger.info(
            "Symbol population finished: {inserted} inserted, {skipped} already known",
            inserted=len(result.inserted),
            skipped=len(result.skipped),
        )
        return result


def stored_active(pool: DuckDBConnectionPool) -> list[Symbol]:
    """Read the ``TRADING`` symbols previously populated into the store."""

    with pool.acquire() as conn:
        rows = conn.execute(
            f"SELECT symbol, status, base_asset, quote_asset FROM {SYMBOLS_TABLE.name} "
            "WHERE status = ? ORDER BY symbol",
            [TRADING_STATUS],
        ).fetchall()
    return [Symbol(*row) for row in rows]


__all__ = [
    "ExchangeInfoPayload",
    "PopulateResult",
    "SymbolDirectory",
    "SymbolPayload",
    "stored_active",
]
