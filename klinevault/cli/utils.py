"""Utility helpers shared by CLI commands."""

from __future__ import annotations

import json
from typing import Mapping, Sequence

import typer
from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table

from klinevault.core.data.ingestion import IngestionReport
from klinevault.core.exceptions import DomainError, KlineVaultError

FATAL_EXIT_CODE = 1


def emit_error(message: str, code: str, *, details: Mapping[str, object] | None = None) -> None:
    """Print a structured error payload to stderr."""

    payload: dict[str, object] = {"code": code, "message": message}
    if details:
        payload["details"] = _sanitize_details(details)
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str), err=True)


def emit_exception(error: KlineVaultError) -> None:
    """Print a fatal error; domain errors also report their layer and context."""

    if isinstance(error, DomainError):
        typer.echo(json.dumps(error.to_payload(), ensure_ascii=False, default=str), err=True)
        return
    emit_error(error.message, error.error_code, details=error.details)


def _sanitize_details(details: Mapping[str, object]) -> Mapping[str, object]:
    sanitized: dict[str, object] = {}
    for key, value in details.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            sanitized[key] = value
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            sanitized[key] = [str(item) for item in value]
        else:
            sanitized[key] = str(value)
    return sanitized


def render_report(report: IngestionReport, console: Console, *, max_failures: int = 20) -> None:
    """Print the outcome counts and the first failures of an ingestion run."""

    summary = Table(title="Ingestion summary", box=SIMPLE)
    summary.add_column("metric")
    summary.add_column("value", justify="right")
    summary.add_row("cells", str(report.total_cells))
    summary.add_row("done", str(report.done_cells))
    summary.add_row("rows persisted", str(report.rows_persisted))
    for state, count in sorted(report.outcomes.items()):
        summary.add_row(state.value, str(count))
    console.print(summary)

    if not report.failures:
        return
    failures = Table(title=f"Failed cells ({len(report.failures)})", box=SIMPLE)
    for column in ("cell", "stage", "code", "message"):
        failures.add_column(column)
    for failure in report.failures[:max_failures]:
        failures.add_row(str(failure.cell), failure.stage, failure.code, failure.message)
    console.print(failures)
    if len(report.failures) > max_failures:
        console.print(f"... {len(report.failures) - max_failures} more, see the log for details")


__all__ = ["FATAL_EXIT_CODE", "emit_error", "emit_exception", "render_report"]
