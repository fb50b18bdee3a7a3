"""Bounded worker pool fanning area jobs out and records back in."""

from __future__ import annotations

import queue
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from threading import Condition, Event, Lock
from typing import Callable, Iterator, Union

import structlog

from ..logging_conf import component_logger
from .fetcher import TransportError
from .manifest import Area
from .parser import PageHandle, Record, RecordExtractor


class WaitGroup:
    """Counter of outstanding jobs; ``wait`` returns once it drops to zero.

    The decrement that reaches zero and the wake-up of waiters happen under
    the same lock, so concurrent ``done`` calls cannot lose the transition.
    """

    def __init__(self) -> None:
        self._count = 0
        self._condition = Condition(Lock())

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    def add(self, delta: int = 1) -> None:
        with self._condition:
            if self._count + delta < 0:
                raise ValueError("WaitGroup counter cannot go negative")
            self._count += delta
            if self._count == 0:
                self._condition.notify_all()

    def done(self) -> None:
        self.add(-1)

    def wait(self, timeout: float | None = None) -> bool:
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=timeout)


@dataclass(frozen=True, slots=True)
class Job:
    sequence: int
    area: Area


@dataclass(frozen=True, slots=True)
class JobOutcome:
    """Terminal state of one job, sent after the job's records."""

    area: Area
    sequence: int
    ok: bool
    record_count: int = 0
    error: str | None = None


ResultMessage = Union[Record, JobOutcome]

_STOP = object()
_CLOSED = object()
# how often blocked queue operations re-check for shutdown
_POLL_INTERVAL = 0.05


class WorkerPool:
    """Fixed-size pool of fetch + extract workers.

    Jobs go in through ``submit`` on a single-slot queue, records and
    per-job outcomes come out through ``results``. ``await_completion``
    closes the result stream once every submitted job has finished.
    ``shutdown`` does not depend on anyone reading ``results``: once it
    starts, workers drop undelivered messages and skip queued jobs.
    """

    def __init__(
        self,
        fetch_page: Callable[[str], PageHandle],
        extractor: RecordExtractor,
        page_url: Callable[[str], str],
        size: int = 30,
        result_buffer: int = 1,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if size < 1:
            raise ValueError("WorkerPool size must be >= 1")
        self.fetch_page = fetch_page
        self.extractor = extractor
        self.page_url = page_url
        self.size = size
        self.logger = logger or component_logger("worker_pool")
        self._jobs: queue.Queue = queue.Queue(maxsize=1)
        self._results: queue.Queue = queue.Queue(maxsize=result_buffer)
        self._pending = WaitGroup()
        self._executor: ThreadPoolExecutor | None = None
        self._workers: list[Future] = []
        self._state_lock = Lock()
        self._stopping = Event()
        self._sequence = 0
        self._closed = False
        self._stopped = False

    def __enter__(self) -> "WorkerPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    def start(self) -> None:
        with self._state_lock:
            if self._executor is not None:
                return
            self._executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix="tally")
            self._workers = [self._executor.submit(self._worker_loop) for _ in range(self.size)]

    def submit(self, area: Area) -> None:
        with self._state_lock:
            if self._executor is None:
                raise RuntimeError("WorkerPool.start must be called before submit")
            if self._stopped or self._closed:
                raise RuntimeError("WorkerPool no longer accepts jobs")
            sequence = self._sequence
            self._sequence += 1
        # counted before the put so a fast worker cannot finish it first
        self._pending.add(1)
        job = Job(sequence=sequence, area=area)
        while True:
            if self._stopping.is_set():
                self._pending.done()
                raise RuntimeError("WorkerPool was shut down")
            try:
                self._jobs.put(job, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def await_completion(self) -> None:
        while not self._pending.wait(timeout=_POLL_INTERVAL):
            if self._stopping.is_set():
                break
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        self._emit(_CLOSED)

    def results(self) -> Iterator[ResultMessage]:
        while True:
            message = self._results.get()
            if message is _CLOSED:
                return
            yield message

    def shutdown(self) -> None:
        with self._state_lock:
            if self._executor is None or self._stopped:
                return
            self._stopped = True
            executor = self._executor
        self._stopping.set()
        # workers skip the jobs still queued ahead of each sentinel
        for _ in self._workers:
            self._jobs.put(_STOP)
        executor.shutdown(wait=True)

    @property
    def submitted(self) -> int:
        return self._sequence

    @property
    def pending(self) -> int:
        return self._pending.count

    # ------------------------------------------------------------------
    def _worker_loop(self) -> None:
        while True:
            job = self._jobs.get()
            if job is _STOP:
                return
            try:
                if not self._stopping.is_set():
                    self._run_job(job)
            finally:
                self._pending.done()

    def _emit(self, message: object) -> bool:
        """Deliver ``message`` to the result queue; give up once shutdown starts."""

        while not self._stopping.is_set():
            try:
                self._results.put(message, timeout=_POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _run_job(self, job: Job) -> None:
        area = job.area
        log = self.logger
        url = None
        try:
            log = log.bind(area_id=area.area_id, district=area.name)
            url = self.page_url(area.area_id)
            page = self.fetch_page(url)
            records = self.extractor.extract(page, area, job.sequence)
        except TransportError as exc:
            log.warning("job_fetch_failed", url=url, error=str(exc))
            self._emit(JobOutcome(area, job.sequence, ok=False, error=str(exc)))
            return
        except Exception as exc:  # noqa: BLE001
            log.error("job_error", url=url, error=str(exc), exc_info=True)
            self._emit(JobOutcome(area, job.sequence, ok=False, error=str(exc)))
            return
        for record in records:
            if not self._emit(record):
                return
        log.debug("job_done", url=url, records=len(records))
        self._emit(JobOutcome(area, job.sequence, ok=True, record_count=len(records)))


__all__ = ["Job", "JobOutcome", "ResultMessage", "WaitGroup", "WorkerPool"]
