"""Per-cell lifecycle: states, allowed transitions and the run report."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from klinevault.core.data.ingestion.models import ArchiveCell, FetchStatus
from klinevault.core.exceptions import InvalidTransition


class CellState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    CACHED = "cached"
    FETCHED = "fetched"
    NOT_FOUND = "not_found"
    FETCH_FAILED = "fetch_failed"
    PARSING = "parsing"
    PARSED = "parsed"
    PARSE_FAILED = "parse_failed"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"
    DONE = "done"


TRANSITIONS: dict[CellState, frozenset[CellState]] = {
    CellState.PENDING: frozenset({CellState.FETCHING}),
    CellState.FETCHING: frozenset(
        {CellState.CACHED, CellState.FETCHED, CellState.NOT_FOUND, CellState.FETCH_FAILED}
    ),
    CellState.CACHED: frozenset({CellState.PARSING}),
    CellState.FETCHED: frozenset({CellState.PARSING}),
    CellState.NOT_FOUND: frozenset({CellState.DONE}),
    CellState.FETCH_FAILED: frozenset({CellState.DONE}),
    CellState.PARSING: frozenset({CellState.PARSED, CellState.PARSE_FAILED}),
    CellState.PARSED: frozenset({CellState.LOADING}),
    CellState.PARSE_FAILED: frozenset({CellState.DONE}),
    CellState.LOADING: frozenset({CellState.LOADED, CellState.LOAD_FAILED}),
    CellState.LOADED: frozenset({CellState.DONE}),
    CellState.LOAD_FAILED: frozenset({CellState.DONE}),
    CellState.DONE: frozenset(),
}

FAILED_STATES = frozenset({CellState.FETCH_FAILED, CellState.PARSE_FAILED, CellState.LOAD_FAILED})

FETCH_STATES: dict[FetchStatus, CellState] = {
    FetchStatus.CACHED: CellState.CACHED,
    FetchStatus.DOWNLOADED: CellState.FETCHED,
    FetchStatus.NOT_FOUND: CellState.NOT_FOUND,
    FetchStatus.FAILED: CellState.FETCH_FAILED,
}


@dataclass
class CellRun:
    """Mutable lifecycle tracker of one cell inside a run."""

    cell: ArchiveCell
    state: CellState = CellState.PENDING
    outcome: CellState | None = None
    rows: int = 0
    history: list[CellState] = field(default_factory=lambda: [CellState.PENDING])

    def advance(self, target: CellState) -> None:
        """Move to ``target``; raises :class:`InvalidTransition` on an illegal edge."""

        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(self.state.value, target.value)
        if target is CellState.DONE:
            self.outcome = self.state
        self.state = target
        self.history.append(target)

    @property
    def done(self) -> bool:
        return self.state is CellState.DONE


@dataclass(frozen=True)
class CellFailure:
    """A cell that ended in a failed state, with enough context to retry it."""

    cell: ArchiveCell
    stage: str
    code: str
    message: str


@dataclass
class IngestionReport:
    """Summary of a run over the cell matrix."""

    total_cells: int = 0
    done_cells: int = 0
    rows_persisted: int = 0
    outcomes: Counter[CellState] = field(default_factory=Counter)
    failures: list[CellFailure] = field(default_factory=list)

    def record(self, run: CellRun) -> None:
        if not run.done or run.outcome is None:
            raise ValueError(f"cell {run.cell} has not reached {CellState.DONE.value}")
        self.done_cells += 1
        self.rows_persisted += run.rows
        self.outcomes[run.outcome] += 1

    @property
    def failed_cells(self) -> int:
        return sum(self.outcomes[state] for state in FAILED_STATES)

    def summary(self) -> dict[str, object]:
        return {
            "total_cells": self.total_cells,
            "done_cells": self.done_cells,
            "rows_persisted": self.rows_persisted,
            "failed_cells": self.failed_cells,
            "outcomes": {state.value: count for state, count in sorted(self.outcomes.items())},
        }


__all__ = [
    "FAILED_STATES",
    "FETCH_STATES",
    "TRANSITIONS",
    "CellFailure",
    "CellRun",
    "CellState",
    "IngestionReport",
]
