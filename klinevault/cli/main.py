"""Main entry point for the klinevault command line interface."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from klinevault.core.config import KlineVaultSettings, load_settings
from klinevault.core.exceptions import ConfigurationError, DirectoryUnavailable
from klinevault.core.logging import configure_logging, logger
from klinevault.core.services import SymbolSource, download_historical, populate_symbols
from klinevault.web import serve

from .utils import FATAL_EXIT_CODE, emit_exception, render_report


def create_app() -> typer.Typer:
    """Create a Typer application instance for klinevault."""

    app = typer.Typer(add_completion=False, help="Backfill historical klines into DuckDB")

    @app.command()
    def main(
        populate_symbols_flag: bool = typer.Option(
            False,
            "--populate-symbols",
            help="Populate the trading symbols from the exchange directory.",
        ),
        download_historical_flag: bool = typer.Option(
            False,
            "--download-historical",
            help="Download historical data for all trading symbols.",
        ),
        symbols_source: SymbolSource = typer.Option(
            SymbolSource.REMOTE,
            "--symbols-source",
            case_sensitive=False,
            help="Read ingestion symbols from the exchange (remote) or the symbols table (store).",
        ),
        symbol: list[str] | None = typer.Option(
            None,
            "--symbol",
            help="Restrict ingestion to this symbol; repeatable.",
        ),
        config: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="TOML configuration file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Override the configured log level.",
        ),
    ) -> None:
        """Populate symbols, backfill history, or (by default) start the API server."""

        try:
            settings = load_settings(config)
        except ConfigurationError as error:
            emit_exception(error)
            raise typer.Exit(code=FATAL_EXIT_CODE) from error

        configure_logging(
            (log_level or settings.logging.level).upper(),
            file_output=settings.logging.file_path is not None,
            file_path=settings.logging.file_path,
        )

        if populate_symbols_flag:
            _run_populate(settings)
            return

        if download_historical_flag:
            _run_download(settings, symbols_source, symbol or None)

        logger.info("Starting API server on {host}:{port}", host=settings.api.host, port=settings.api.port)
        serve(settings)

    return app


def _run_populate(settings: KlineVaultSettings) -> None:
    try:
        result = asyncio.run(populate_symbols(settings))
    except DirectoryUnavailable as error:
        emit_exception(error)
        raise typer.Exit(code=FATAL_EXIT_CODE) from error
    typer.echo(f"{len(result.inserted)} symbols inserted, {len(result.skipped)} already known")


def _run_download(settings: KlineVaultSettings, source: SymbolSource, only: list[str] | None) -> None:
    try:
        report = asyncio.run(download_historical(settings, source, only))
    except DirectoryUnavailable as error:
        emit_exception(error)
        raise typer.Exit(code=FATAL_EXIT_CODE) from error
    render_report(report, Console())


app = create_app()


def run() -> None:
    app()


__all__ = ["app", "create_app", "run"]
