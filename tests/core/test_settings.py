from __future__ import annotations

from pathlib import Path

import pytest

from klinevault.core.config import KlineVaultSettings, load_settings
from klinevault.core.config.settings import BINANCE_EXCHANGE_INFO, BINANCE_MONTHLY_KLINES
from klinevault.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in ("KLINEVAULT_FETCH__MAX_CONCURRENT_FETCHES", "KLINEVAULT_DATABASE__PATH", "KLINEVAULT_API__CORS_ORIGIN"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_match_exchange_layout() -> None:
    settings = KlineVaultSettings()

    assert settings.archive.base_url == BINANCE_MONTHLY_KLINES
    assert settings.directory.exchange_info_url == BINANCE_EXCHANGE_INFO
    assert settings.fetch.max_concurrent_fetches == 30
    layout = settings.archive.layout()
    assert layout.years == tuple(range(2017, 2025))
    assert layout.cache_root == Path("history")


def test_environment_overrides_nested_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KLINEVAULT_FETCH__MAX_CONCURRENT_FETCHES", "8")
    monkeypatch.setenv("KLINEVAULT_API__CORS_ORIGIN", "http://localhost:3000")

    settings = load_settings()

    assert settings.fetch.max_concurrent_fetches == 8
    assert settings.api.cors_origin == "http://localhost:3000"


def test_toml_file_is_layered_under_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config = tmp_path / "klinevault.toml"
    config.write_text(
        '[archive]\nintervals = ["1h", "1d"]\nfirst_year = 2020\nlast_year = 2021\n\n'
        '[database]\npath = "from-file.duckdb"\n\n'
        "[fetch]\nmax_retries = 5\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("KLINEVAULT_DATABASE__PATH", "from-env.duckdb")

    settings = load_settings(config)

    assert settings.archive.intervals == ("1h", "1d")
    assert settings.archive.layout().years == (2020, 2021)
    assert settings.fetch.max_retries == 5
    assert settings.database.path == "from-env.duckdb"


def test_overrides_win_over_file(tmp_path: Path) -> None:
    config = tmp_path / "klinevault.toml"
    config.write_text("[fetch]\nmax_retries = 5\n", encoding="utf-8")

    settings = load_settings(config, fetch={"max_retries": 1})

    assert settings.fetch.max_retries == 1


def test_missing_file_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(tmp_path / "absent.toml")

    assert exc_info.value.error_code == "CONFIGURATION_ERROR"


def test_invalid_toml_raises_configuration_error(tmp_path: Path) -> None:
    config = tmp_path / "broken.toml"
    config.write_text("[fetch\nmax_retries = ", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings(config)


@pytest.mark.parametrize(
    "overrides",
    [
        {"fetch": {"max_concurrent_fetches": 0}},
        {"archive": {"first_year": 2024, "last_year": 2020}},
        {"archive": {"intervals": []}},
    ],
)
def test_invalid_values_raise_configuration_error(overrides: dict) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(**overrides)


def test_invalid_environment_raises_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KLINEVAULT_FETCH__MAX_CONCURRENT_FETCHES", "-1")

    with pytest.raises(ConfigurationError):
        load_settings()
