"""Fan release downloads out across companies and merge the results.

`ReleaseDataDownloader.run` launches one dask task per company on the threaded
scheduler, waits for all of them, then appends each company's grouped lines
to the per-symbol files and unions the registry entries.

Module notes:
- The pool is sized to the number of tasks; request throughput is bounded by
  the shared `RateGate` only.
- Writes happen after the fetch barrier, one task per destination file, with
  each company's block appended atomically and in company-list order.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterable
from typing import cast, Any as TypingAny

from dask import delayed, compute  # type: ignore[attr-defined]

from estimize_pipeline.aggregate.progress import ProgressReporter
from estimize_pipeline.aggregate.release_worker import ReleaseWorker, WorkerOutput
from estimize_pipeline.aggregate.writer import GroupWriter, destination_name
from estimize_pipeline.models import Company, RegistryEntry

log = logging.getLogger(__name__)

RELEASE_SUBFOLDER = "release"


def dedupe_companies(companies: Iterable[Company]) -> list[Company]:
    """Drop repeated tickers, keeping the first occurrence of each."""
    seen: set[str] = set()
    out: list[Company] = []
    for c in companies:
        if c.ticker in seen:
            continue
        seen.add(c.ticker)
        out.append(c)
    return out


class ReleaseDataDownloader:
    """Downloads releases for every company into `<destination>/release`.

    Args:
        destination_folder: Root output folder.
        worker: Configured `ReleaseWorker` shared by all tasks.
    """

    def __init__(self, destination_folder: Path, worker: ReleaseWorker) -> None:
        self.destination_folder = destination_folder / RELEASE_SUBFOLDER
        self.worker = worker
        self.writer = GroupWriter(self.destination_folder)

    def _fetch_one(self, ticker: str, progress: ProgressReporter) -> WorkerOutput | Exception:
        # Errors are returned, not raised, so compute() only returns once every
        # sibling has finished; run() re-raises the first one afterwards.
        try:
            return self.worker.fetch(ticker)
        except Exception as e:
            return e
        finally:
            progress.advance()

    def _write_destination(self, blocks: list[tuple[str, list[str]]]) -> int:
        return sum(self.writer.append(symbol, lines) for symbol, lines in blocks)

    def _commit(self, outputs: Iterable[WorkerOutput]) -> int:
        """Append every output group to its destination file.

        Blocks for one destination are written by a single task in company
        order; unrelated destinations are written in parallel.
        """
        by_destination: dict[str, list[tuple[str, list[str]]]] = {}
        for out in outputs:
            for symbol, lines in out.groups.items():
                by_destination.setdefault(destination_name(symbol), []).append((symbol, lines))

        tasks = [
            delayed(self._write_destination, pure=False)(blocks)
            for blocks in by_destination.values()
        ]
        if not tasks:
            return 0
        written = cast(TypingAny, compute)(*tasks, scheduler="threads", num_workers=len(tasks))
        return int(sum(written))

    def run(self, companies: Iterable[Company]) -> tuple[bool, set[RegistryEntry]]:
        """Download, resolve and persist releases for `companies`.

        Args:
            companies: Company list as returned by the provider.

        Returns:
            Tuple `(success, registry)`. On failure the registry is empty.
        """
        started = time.perf_counter()
        registry: set[RegistryEntry] = set()

        try:
            tickers: list[str] = []
            for company in dedupe_companies(companies):
                ticker = self.worker.prepare(company)
                if ticker is not None:
                    tickers.append(ticker)

            log.info("Start processing %d companies", len(tickers))
            progress = ProgressReporter(len(tickers))

            tasks: list[Any] = [
                delayed(self._fetch_one, pure=False)(ticker, progress) for ticker in tickers
            ]
            results: tuple[WorkerOutput | Exception, ...] = ()
            if tasks:
                results = cast(TypingAny, compute)(
                    *tasks, scheduler="threads", num_workers=len(tasks)
                )

            failures = [r for r in results if isinstance(r, Exception)]
            if failures:
                log.error("%d of %d company tasks raised", len(failures), len(results))
                raise failures[0]
            outputs = cast("tuple[WorkerOutput, ...]", results)

            lines = self._commit(outputs)
            registry = registry.union(*(out.registry for out in outputs))
        except Exception:
            log.exception("Release download failed")
            return False, set()

        log.info(
            "Finished in %s: %d lines written, %d registry entries",
            timedelta(seconds=time.perf_counter() - started),
            lines,
            len(registry),
        )
        return True, registry
