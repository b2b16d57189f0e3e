"""Pytest configuration for the klinevault test suite."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from klinevault.core.data.ingestion import ArchiveLayout, ArchiveLocator
from klinevault.core.data.storage import DuckDBConnectionPool, DuckDBFactory

BASE_URL = "https://archive.test/data/spot/monthly/klines"

ArchiveBuilder = Callable[..., bytes]


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--klinevault-run-integration",
        action="store_true",
        default=False,
        help="Run klinevault integration tests that require network access.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the integration marker for klinevault tests."""

    config.addinivalue_line(
        "markers",
        "integration: marks klinevault tests requiring network or external services",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--klinevault-run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="integration tests require --klinevault-run-integration",
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def kline_row(open_time: int, price: float = 100.0, trades: int = 500) -> str:
    """Render one archive row in the exchange's column order."""

    return (
        f"{open_time},{price},{price + 10},{price - 10},{price + 5},1000.0,"
        f"{open_time + 59_999},105000.0,{trades},200.0,21000.0,0"
    )


def build_archive(entry_name: str, lines: list[str], *, trailing_newline: bool = True) -> bytes:
    """Zip ``lines`` into a single CSV entry the way monthly archives are published."""

    body = "\n".join(lines) + ("\n" if trailing_newline else "")
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(entry_name, body)
    return buffer.getvalue()


@pytest.fixture
def archive_builder() -> ArchiveBuilder:
    return build_archive


@pytest.fixture
def layout(tmp_path: Path) -> ArchiveLayout:
    """Small matrix: two intervals over one year."""

    return ArchiveLayout(
        base_url=BASE_URL,
        cache_root=tmp_path / "history",
        intervals=("1h", "1d"),
        years=(2021,),
    )


@pytest.fixture
def locator(layout: ArchiveLayout) -> ArchiveLocator:
    return ArchiveLocator(layout)


@pytest.fixture
def pool() -> Iterator[DuckDBConnectionPool]:
    with DuckDBFactory().create_pool(2) as connection_pool:
        yield connection_pool


@pytest.fixture
def row_builder() -> Callable[..., str]:
    return kline_row
