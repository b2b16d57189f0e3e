"""
Ingestion orchestrator.

Drives every cell of the work matrix through fetch, parse and load:

* a producer enumerates cells lazily into a bounded queue;
* ``max_concurrent_fetches`` fetch workers download archives, so never more
  than that many fetches are in flight;
* load workers parse and persist archives in a worker thread, holding a
  per-partition lock so each ``(symbol, interval)`` has at most one open
  transaction at a time.

Every cell-scoped failure is recorded on the report and logged with the
cell's coordinates; nothing a single cell does can stop the run.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Protocol

from klinevault.core.data.ingestion.lifecycle import (
    FETCH_STATES,
    CellFailure,
    CellRun,
    CellState,
    IngestionReport,
)
from klinevault.core.data.ingestion.models import ArchiveCell, Candle, FetchOutcome, FetchStatus, Symbol
from klinevault.core.data.ingestion.parser import parse_archive
from klinevault.core.exceptions import ErrorCode, KlineVaultError
from klinevault.core.logging import log_context, logger

if TYPE_CHECKING:
    from pathlib import Path

    from klinevault.core.data.ingestion.locator import ArchiveLocator


class Fetcher(Protocol):
    async def fetch(self, cell: ArchiveCell) -> FetchOutcome: ...


class Loader(Protocol):
    def load_batch(self, records: Iterable[Candle], symbol: str, interval: str) -> int: ...


ParseFn = Callable[..., Iterable[Candle]]

_STOP = None


def _failure(run: CellRun, stage: str, exc: BaseException) -> CellFailure:
    if isinstance(exc, KlineVaultError):
        return CellFailure(run.cell, stage, exc.error_code, exc.message)
    return CellFailure(run.cell, stage, ErrorCode.GENERAL_ERROR.value, f"{type(exc).__name__}: {exc}")


class IngestionOrchestrator:
    """Run the fetch, parse and load stages over a matrix of archive cells."""

    def __init__(
        self,
        locator: ArchiveLocator,
        fetcher: Fetcher,
        loader: Loader,
        *,
        max_concurrent_fetches: int = 30,
        max_concurrent_loads: int = 4,
        parse: ParseFn = parse_archive,
        progress_every: int = 1000,
    ) -> None:
        if max_concurrent_fetches <= 0:
            raise ValueError("max_concurrent_fetches must be positive")
        if max_concurrent_loads <= 0:
            raise ValueError("max_concurrent_loads must be positive")
        self._locator = locator
        self._fetcher = fetcher
        self._loader = loader
        self._parse = parse
        self._max_fetches = max_concurrent_fetches
        self._max_loads = max_concurrent_loads
        self._progress_every = progress_every

    async def run(self, symbols: Sequence[Symbol | str]) -> IngestionReport:
        """Ingest every cell of ``symbols`` and return the run report."""

        symbols = list(symbols)
        total = self._locator.count_cells(symbols)
        return await self.run_cells(self._locator.enumerate_cells(symbols), total=total)

    async def run_cells(self, cells: Iterable[ArchiveCell], *, total: int | None = None) -> IngestionReport:
        """Ingest an explicit set of cells, e.g. the failures of an earlier run."""

        if total is None:
            cells = list(cells)
            total = len(cells)
        report = IngestionReport(total_cells=total)

        cell_queue: asyncio.Queue[ArchiveCell | None] = asyncio.Queue(maxsize=self._max_fetches * 2)
        load_queue: asyncio.Queue[CellRun | None] = asyncio.Queue(maxsize=self._max_loads * 2)
        partition_locks: defaultdict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

        with log_context(stage="ingest") as trace_id:
            logger.info(
                "Ingestion started: {total} cells, {fetchers} fetch workers, {loaders} load workers",
                total=total,
                fetchers=self._max_fetches,
                loaders=self._max_loads,
            )
            producer = asyncio.create_task(self._produce(cells, cell_queue))
            fetch_tasks = [
                asyncio.create_task(self._fetch_worker(cell_queue, load_queue, report, trace_id))
                for _ in range(self._max_fetches)
            ]
            load_tasks = [
                asyncio.create_task(self._load_worker(load_queue, partition_locks, report, trace_id))
                for _ in range(self._max_loads)
            ]
            tasks = [producer, *fetch_tasks, *load_tasks]
            try:
                await asyncio.gather(producer, *fetch_tasks)
                for _ in load_tasks:
                    await load_queue.put(_STOP)
                await asyncio.gather(*load_tasks)
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()

            logger.info("Ingestion finished", **report.summary())
        return report

    async def _produce(self, cells: Iterable[ArchiveCell], queue: asyncio.Queue[ArchiveCell | None]) -> None:
        for cell in cells:
            await queue.put(cell)
        for _ in range(self._max_fetches):
            await queue.put(_STOP)

    async def _fetch_worker(
        self,
        cells: asyncio.Queue[ArchiveCell | None],
        loads: asyncio.Queue[CellRun | None],
        report: IngestionReport,
        trace_id: str,
    ) -> None:
        while (cell := await cells.get()) is not _STOP:
            run = CellRun(cell)
            with log_context(trace_id=trace_id, stage="fetch", **cell.describe()):
                run.advance(CellState.FETCHING)
                try:
                    outcome = await self._fetcher.fetch(cell)
                except Exception as exc:  # noqa: BLE001 - a broken fetcher must not stop the run
                    outcome = FetchOutcome.failed(None, f"{type(exc).__name__}: {exc}")
                run.advance(FETCH_STATES[outcome.status])

                if outcome.has_data:
                    if outcome.status is FetchStatus.DOWNLOADED:
                        logger.info("Downloaded {cell} ({size} bytes)", cell=str(cell), size=outcome.bytes_written)
                    await loads.put(run)
                    continue

                if outcome.status is FetchStatus.NOT_FOUND:
                    logger.debug("No archive published for {cell}", cell=str(cell))
                else:
                    failure = CellFailure(cell, "fetch", ErrorCode.FETCH_FAILED.value, outcome.error or "fetch failed")
                    self._record_failure(report, failure, http_status=outcome.http_status)
                self._finish(report, run)

    async def _load_worker(
        self,
        loads: asyncio.Queue[CellRun | None],
        locks: defaultdict[tuple[str, str], asyncio.Lock],
        report: IngestionReport,
        trace_id: str,
    ) -> None:
        while (run := await loads.get()) is not _STOP:
            with log_context(trace_id=trace_id, stage="load", **run.cell.describe()):
                async with locks[run.cell.partition]:
                    failure = await asyncio.to_thread(self._parse_and_load, run)
                if failure is not None:
                    self._record_failure(report, failure)
                self._finish(report, run)

    def _parse_and_load(self, run: CellRun) -> CellFailure | None:
        cell = run.cell
        location = self._locator.locate_cell(cell)

        run.advance(CellState.PARSING)
        try:
            candles = list(self._read(location.path, location.entry_name, cell))
        except Exception as exc:  # noqa: BLE001 - parse failures are cell-scoped
            run.advance(CellState.PARSE_FAILED)
            return _failure(run, "parse", exc)
        run.advance(CellState.PARSED)

        run.advance(CellState.LOADING)
        try:
            run.rows = self._loader.load_batch(candles, cell.symbol, cell.interval)
        except Exception as exc:  # noqa: BLE001 - load failures are cell-scoped
            run.advance(CellState.LOAD_FAILED)
            return _failure(run, "load", exc)
        run.advance(CellState.LOADED)
        return None

    def _read(self, path: Path, entry_name: str, cell: ArchiveCell) -> Iterable[Candle]:
        return self._parse(path, entry_name=entry_name, symbol=cell.symbol, interval=cell.interval)

    def _record_failure(self, report: IngestionReport, failure: CellFailure, **extra: object) -> None:
        report.failures.append(failure)
        logger.bind(error_code=failure.code, stage=failure.stage).error(
            "Cell {cell} failed during {stage_name}: {reason}",
            cell=str(failure.cell),
            stage_name=failure.stage,
            reason=failure.message,
            **extra,
        )

    def _finish(self, report: IngestionReport, run: CellRun) -> None:
        run.advance(CellState.DONE)
        report.record(run)
        if self._progress_every and report.done_cells % self._progress_every == 0:
            logger.info(
                "Progress: {done}/{total} cells, {rows} rows persisted",
                done=report.done_cells,
                total=report.total_cells,
                rows=report.rows_persisted,
            )


__all__ = ["Fetcher", "IngestionOrchestrator", "Loader"]
