from __future__ import annotations

from pathlib import Path

import pytest

from klinevault.core.data.ingestion import ArchiveCell, ArchiveLayout, ArchiveLocator, Symbol
from klinevault.core.data.ingestion.locator import DEFAULT_INTERVALS, DEFAULT_YEARS


def test_locate_builds_url_path_and_entry(locator: ArchiveLocator, layout: ArchiveLayout) -> None:
    location = locator.locate("BTCUSDT", "1h", 2021, 3)

    assert location.url == f"{layout.base_url}/BTCUSDT/1h/BTCUSDT-1h-2021-03.zip"
    assert location.path == Path(layout.cache_root) / "BTCUSDT" / "1h" / "2021-03.zip"
    assert location.entry_name == "BTCUSDT-1h-2021-03.csv"


def test_locate_strips_trailing_slash_from_base(tmp_path: Path) -> None:
    locator = ArchiveLocator(ArchiveLayout(base_url="https://example.test/klines/", cache_root=tmp_path))

    assert locator.locate("ETHBTC", "1d", 2019, 12).url == "https://example.test/klines/ETHBTC/1d/ETHBTC-1d-2019-12.zip"


@pytest.mark.parametrize("interval, month", [("3m", 1), ("1h", 0), ("1h", 13)])
def test_locate_rejects_unknown_coordinates(locator: ArchiveLocator, interval: str, month: int) -> None:
    with pytest.raises(ValueError):
        locator.locate("BTCUSDT", interval, 2021, month)


def test_locate_performs_no_io(locator: ArchiveLocator, layout: ArchiveLayout) -> None:
    locator.locate("BTCUSDT", "1h", 2021, 1)

    assert not Path(layout.cache_root).exists()


def test_enumerate_cells_order_and_size(locator: ArchiveLocator) -> None:
    symbols = [Symbol("BTCUSDT", "TRADING", "BTC", "USDT"), "ETHUSDT"]

    cells = list(locator.enumerate_cells(symbols))

    assert len(cells) == 2 * 2 * 1 * 12
    assert locator.count_cells(symbols) == len(cells)
    assert cells[0] == ArchiveCell("BTCUSDT", "1h", 2021, 1)
    assert cells[11] == ArchiveCell("BTCUSDT", "1h", 2021, 12)
    assert cells[12] == ArchiveCell("BTCUSDT", "1d", 2021, 1)
    assert cells[24] == ArchiveCell("ETHUSDT", "1h", 2021, 1)
    assert len(set(cells)) == len(cells)


def test_enumerate_cells_is_lazy(locator: ArchiveLocator) -> None:
    cells = locator.enumerate_cells(["BTCUSDT"])

    assert next(cells) == ArchiveCell("BTCUSDT", "1h", 2021, 1)


def test_default_layout_covers_full_matrix(tmp_path: Path) -> None:
    layout = ArchiveLayout(base_url="https://example.test", cache_root=tmp_path)

    assert layout.intervals == DEFAULT_INTERVALS
    assert layout.years == DEFAULT_YEARS == tuple(range(2017, 2025))
    assert layout.cells_per_symbol == 9 * 8 * 12


def test_cell_string_and_context() -> None:
    cell = ArchiveCell("BTCUSDT", "4h", 2020, 7)

    assert str(cell) == "BTCUSDT-4h-2020-07"
    assert cell.describe() == {"symbol": "BTCUSDT", "interval": "4h", "year": 2020, "month": 7}
    assert cell.partition == ("BTCUSDT", "4h")
