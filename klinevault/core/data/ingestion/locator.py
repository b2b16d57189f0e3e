"""Mapping from cells to archive urls and cache paths, and the work matrix."""

from __future__ import annotations

from collections.abc import Iterable, Iterator  # noqa: TC003
from dataclasses import dataclass
from pathlib import Path

from klinevault.core.data.ingestion.models import ArchiveCell, ArchiveLocation, Symbol

DEFAULT_INTERVALS: tuple[str, ...] = ("15m", "30m", "1h", "2h", "4h", "12h", "1d", "1w", "1mo")
DEFAULT_YEARS: tuple[int, ...] = tuple(range(2017, 2025))
MONTHS: tuple[int, ...] = tuple(range(1, 13))


@dataclass(frozen=True)
class ArchiveLayout:
    """Immutable description of the remote archive tree and the local cache."""

    base_url: str
    cache_root: Path
    intervals: tuple[str, ...] = DEFAULT_INTERVALS
    years: tuple[int, ...] = DEFAULT_YEARS
    months: tuple[int, ...] = MONTHS

    @property
    def cells_per_symbol(self) -> int:
        return len(self.intervals) * len(self.years) * len(self.months)


class ArchiveLocator:
    """Pure lookups over an :class:`ArchiveLayout`; performs no I/O."""

    def __init__(self, layout: ArchiveLayout) -> None:
        self.layout = layout

    def locate(self, symbol: str, interval: str, year: int, month: int) -> ArchiveLocation:
        """Return the remote url, cache path and csv entry name of one archive.

        Raises:
            ValueError: ``interval`` is not part of the layout or ``month`` is not 1-12.
        """

        if interval not in self.layout.intervals:
            raise ValueError(f"unknown interval {interval!r}")
        if not 1 <= month <= 12:
            raise ValueError(f"month must be within 1-12, got {month}")

        stem = f"{symbol}-{interval}-{year}-{month:02d}"
        base = self.layout.base_url.rstrip("/")
        return ArchiveLocation(
            url=f"{base}/{symbol}/{interval}/{stem}.zip",
            path=Path(self.layout.cache_root) / symbol / interval / f"{year}-{month:02d}.zip",
            entry_name=f"{stem}.csv",
        )

    def locate_cell(self, cell: ArchiveCell) -> ArchiveLocation:
        return self.locate(cell.symbol, cell.interval, cell.year, cell.month)

    def enumerate_cells(self, symbols: Iterable[Symbol | str]) -> Iterator[ArchiveCell]:
        """Yield the full matrix ordered by symbol, interval, year, then month."""

        for symbol in symbols:
            code = symbol.symbol if isinstance(symbol, Symbol) else symbol
            for interval in self.layout.intervals:
                for year in self.layout.years:
                    for month in self.layout.months:
                        yield ArchiveCell(code, interval, year, month)

    def count_cells(self, symbols: Iterable[Symbol | str]) -> int:
        return sum(1 for _ in symbols) * self.layout.cells_per_symbol


__all__ = [
    "DEFAULT_INTERVALS",
    "DEFAULT_YEARS",
    "MONTHS",
    "ArchiveLayout",
    "ArchiveLocator",
]
