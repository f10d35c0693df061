# pipeline.py - wires discovery, the worker pool and the aggregator under one cancellation token

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from .cancel import CancellationToken
from .channel import BoundedChannel
from .diag import Diagnostics
from .discover import run_discovery
from .models import MatchRecord, SearchConfig, SearchSummary, TakeStatus, WorkerExit, WorkerReport
from .scanner import build_matcher, scan_file, should_target

Sink = Callable[[MatchRecord], None]


class SearchCoordinator:
    """Runs one search.

    Shutdown order: the discoverer closes the work queue, workers leave once
    it is drained (or the token fires), the closer closes the result channel
    once every worker has returned, and ``run`` returns after the result
    channel is drained.
    """

    def __init__(self, config: SearchConfig, sink: Sink, diagnostics: Optional[Diagnostics] = None):
        self.config = config
        self.sink = sink
        self.diagnostics = diagnostics or Diagnostics(verbose=config.verbose)
        self.token = CancellationToken()
        self.work_queue: BoundedChannel[str] = BoundedChannel(config.queue_size, self.token, "work queue")
        self.results: BoundedChannel[MatchRecord] = BoundedChannel(
            config.result_buffer, self.token, "result channel"
        )
        self.reports: List[WorkerReport] = []
        self._matcher = build_matcher(config.term, config.case_insensitive)
        self._started = False
        self._start_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> bool:
        return self.token.cancel()

    def _scan(self, path: str) -> Optional[List[MatchRecord]]:
        cfg = self.config
        if not should_target(path, cfg.extensions):
            return None
        try:
            return scan_file(
                path,
                cfg.term,
                cfg.case_insensitive,
                matcher=self._matcher,
                perfile=cfg.max_per_file,
                word=cfg.word,
                excel=cfg.excel,
                diagnostics=self.diagnostics,
            )
        except Exception as exc:
            self.diagnostics.warn_once(f"file:{path}", f"failed to scan {path} ({exc})")
            return None

    def _worker(self, worker_id: int) -> WorkerReport:
        self.diagnostics.info(f"Worker {worker_id} started")
        files = 0
        hits = 0
        exit_state = WorkerExit.EXHAUSTED
        while True:
            status, path = self.work_queue.take()
            if status is TakeStatus.EXHAUSTED:
                break
            if status is TakeStatus.CANCELLED:
                exit_state = WorkerExit.CANCELLED
                break
            files += 1
            records = self._scan(path) or []
            for record in records:
                if not self.results.put(record):
                    exit_state = WorkerExit.CANCELLED
                    break
                hits += 1
            if exit_state is WorkerExit.CANCELLED:
                break
        self.diagnostics.info(f"Worker {worker_id} finished")
        return WorkerReport(worker_id, exit_state, files, hits)

    def _close_results(self, futures) -> None:
        wait(futures)
        for fut in futures:
            exc = fut.exception()
            if exc is not None:
                self.diagnostics.error(f"worker crashed: {exc}")
                self.token.cancel()
                continue
            self.reports.append(fut.result())
        self.results.close()
        self.diagnostics.info("All workers finished")

    def _aggregate(self) -> int:
        delivered = 0
        while True:
            status, record = self.results.take()
            if status is TakeStatus.ITEM:
                self.sink(record)
                delivered += 1
                continue
            if status is TakeStatus.CANCELLED:
                # flush what was already aggregated before the token fired
                for pending in self.results.drain():
                    self.sink(pending)
                    delivered += 1
            return delivered

    def run(self) -> SearchSummary:
        with self._start_lock:
            if self._started:
                raise RuntimeError("SearchCoordinator.run() may only be called once")
            self._started = True

        cfg = self.config
        self.diagnostics.info(
            f"Searching for '{cfg.term}' in '{cfg.root}' with {cfg.workers} workers"
        )
        start = time.time()
        executor = ThreadPoolExecutor(max_workers=cfg.workers + 2, thread_name_prefix="fastgrep")
        try:
            executor.submit(
                run_discovery, cfg.root, self.work_queue, self.token, self.diagnostics, cfg.exclude_dirs
            )
            workers = [executor.submit(self._worker, i) for i in range(cfg.workers)]
            executor.submit(self._close_results, workers)
            delivered = self._aggregate()
        except BaseException:
            # a failing sink (or an interrupt) stops every stage before re-raising
            self.token.cancel()
            raise
        finally:
            executor.shutdown(wait=True)

        elapsed = time.time() - start
        summary = SearchSummary(
            files_scanned=sum(r.files_scanned for r in self.reports),
            matches=delivered,
            elapsed=elapsed,
            cancelled=self.token.cancelled,
        )
        self.diagnostics.status("done", summary.files_scanned, summary.matches, f"{elapsed:.3f}")
        return summary


def search(config: SearchConfig, sink: Sink, diagnostics: Optional[Diagnostics] = None) -> SearchSummary:
    return SearchCoordinator(config, sink, diagnostics).run()
