"""Extraction of kline rows from cached monthly archives."""

from __future__ import annotations

import csv
import io
import zipfile
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from klinevault.core.data.ingestion.models import Candle
from klinevault.core.exceptions import ArchiveCorrupt, MissingEntry, RowMalformed

REQUIRED_FIELDS = 10

OPEN_TIME = 0
OPEN = 1
HIGH = 2
LOW = 3
CLOSE = 4
VOLUME = 5
NUM_TRADES = 8
TAKER_VOLUME = 9


def parse_row(fields: list[str], *, symbol: str, interval: str, line_number: int = 1) -> Candle:
    """Convert one split CSV row into a :class:`Candle`.

    Raises:
        RowMalformed: fewer than 10 fields, or a numeric field does not parse.
    """

    if len(fields) < REQUIRED_FIELDS:
        raise RowMalformed(
            f"line {line_number}: expected at least {REQUIRED_FIELDS} fields, got {len(fields)}",
            line_number=line_number,
            context={"symbol": symbol, "interval": interval},
        )
    try:
        return Candle(
            symbol=symbol,
            interval=interval,
            open_time=int(fields[OPEN_TIME]),
            open=float(fields[OPEN]),
            high=float(fields[HIGH]),
            low=float(fields[LOW]),
            close=float(fields[CLOSE]),
            volume=float(fields[VOLUME]),
            taker_volume=float(fields[TAKER_VOLUME]),
            num_trades=int(fields[NUM_TRADES]),
        )
    except ValueError as exc:
        raise RowMalformed(
            f"line {line_number}: {exc}",
            line_number=line_number,
            context={"symbol": symbol, "interval": interval},
        ) from exc


def _is_header(fields: list[str]) -> bool:
    head = fields[OPEN_TIME].strip() if fields else ""
    return bool(head) and not head.lstrip("-").isdigit()


@dataclass(frozen=True)
class CandleArchive:
    """Restartable view over the candles stored in one cached archive.

    Every iteration reopens the zip file, so iterating twice yields the same
    ordered sequence and nothing is held open between iterations.
    """

    path: Path
    entry_name: str
    symbol: str
    interval: str

    def __iter__(self) -> Iterator[Candle]:
        context = {"symbol": self.symbol, "interval": self.interval, "path": str(self.path)}
        try:
            archive = zipfile.ZipFile(self.path)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveCorrupt(f"cannot open archive {self.path}: {exc}", context=context) from exc

        with archive:
            try:
                raw = archive.open(self.entry_name)
            except KeyError as exc:
                raise MissingEntry(f"{self.entry_name} not found in {self.path}", context=context) from exc

            with raw, io.TextIOWrapper(raw, encoding="utf-8", newline="") as text:
                try:
                    yield from self._rows(csv.reader(text))
                except (zipfile.BadZipFile, OSError, UnicodeDecodeError) as exc:
                    raise ArchiveCorrupt(f"cannot read {self.entry_name}: {exc}", context=context) from exc

    def _rows(self, reader: Iterator[list[str]]) -> Iterator[Candle]:
        for line_number, fields in enumerate(reader, start=1):
            if not fields or (len(fields) == 1 and not fields[0].strip()):
                continue
            if line_number == 1 and _is_header(fields):
                continue
            yield parse_row(fields, symbol=self.symbol, interval=self.interval, line_number=line_number)


def parse_archive(path: Path, *, entry_name: str, symbol: str, interval: str) -> CandleArchive:
    """Return the lazy candle sequence of a cached archive."""

    return CandleArchive(Path(path), entry_name, symbol, interval)


__all__ = ["CandleArchive", "REQUIRED_FIELDS", "parse_archive", "parse_row"]
