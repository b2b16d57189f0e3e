"""
Archive fetcher.

Downloads one monthly archive per call. A file already present in the local
cache short-circuits the network entirely; a 404 is a valid "no data for that
month" answer; bodies are streamed to disk chunk by chunk so memory use does
not depend on archive size.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from klinevault.core.data.ingestion.models import ArchiveCell, FetchOutcome
from klinevault.core.exceptions import FetchFailed
from klinevault.core.logging import logger

if TYPE_CHECKING:
    from klinevault.core.data.ingestion.locator import ArchiveLocator

PARTIAL_SUFFIX = ".part"


@dataclass
class FetchRetryConfig:
    """Configuration for retrying transient download failures."""

    max_retries: int = 2
    backoff_factor: float = 1.0
    retry_on_status: tuple[int, ...] = (429, 500, 502, 503, 504)
    retry_on_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (httpx.TimeoutException, httpx.TransportError)
    )

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.backoff_factor < 0:
            raise ValueError("backoff_factor must be non-negative")

    def delay(self, attempt: int) -> float:
        return self.backoff_factor * (2**attempt)


class _TransientStatus(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"transient HTTP status {status_code}")
        self.status_code = status_code


class ArchiveFetcher:
    """Fetch archives for cells into the local cache."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        locator: ArchiveLocator,
        *,
        retry: FetchRetryConfig | None = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._client = client
        self._locator = locator
        self._retry = retry or FetchRetryConfig()
        self._chunk_size = chunk_size

    async def fetch(self, cell: ArchiveCell) -> FetchOutcome:
        """Bring the archive of ``cell`` into the cache.

        Never raises for HTTP or transport problems; those are reported as a
        ``FAILED`` outcome so that a single cell cannot abort a run.
        """

        location = self._locator.locate_cell(cell)
        if location.path.exists():
            logger.debug("Archive already cached", path=str(location.path))
            return FetchOutcome.cached()

        attempt = 0
        while True:
            try:
                return await self._download(location.url, location.path)
            except _TransientStatus as exc:
                last_error = FetchFailed(str(exc), status_code=exc.status_code, context=cell.describe())
            except self._retry.retry_on_exceptions as exc:
                last_error = FetchFailed(f"{type(exc).__name__}: {exc}", context=cell.describe())
            except FetchFailed as exc:
                return FetchOutcome.failed(exc.status_code, exc.message)
            except httpx.HTTPError as exc:
                return FetchOutcome.failed(None, f"{type(exc).__name__}: {exc}")
            except OSError as exc:
                return FetchOutcome.failed(None, f"cannot write {location.path}: {exc}")

            if attempt >= self._retry.max_retries:
                return FetchOutcome.failed(last_error.status_code, last_error.message)

            delay = self._retry.delay(attempt)
            attempt += 1
            logger.warning(
                "Transient fetch failure, retrying in {delay:.1f}s (attempt {attempt})",
                delay=delay,
                attempt=attempt,
                reason=last_error.message,
            )
            await asyncio.sleep(delay)

    async def _download(self, url: str, path: Path) -> FetchOutcome:
        async with self._client.stream("GET", url) as response:
            status = response.status_code
            if status == 404:
                return FetchOutcome.not_found()
            if status in self._retry.retry_on_status:
                raise _TransientStatus(status)
            if not response.is_success:
                raise FetchFailed(f"HTTP {status} for {url}", status_code=status)

            path.parent.mkdir(parents=True, exist_ok=True)
            partial = path.with_name(path.name + PARTIAL_SUFFIX)
            written = 0
            try:
                with open(partial, "wb") as file:
                    async for chunk in response.aiter_bytes(self._chunk_size):
                        file.write(chunk)
                        written += len(chunk)
                os.replace(partial, path)
            except BaseException:
                partial.unlink(missing_ok=True)
                raise

        return FetchOutcome.downloaded(status, written)


__all__ = ["ArchiveFetcher", "FetchRetryConfig", "PARTIAL_SUFFIX"]
