"""Task queue seam for derivation work.

``SyncTaskQueue`` runs everything inline in the caller's thread.
``ThreadPoolTaskQueue`` runs the members of a batch concurrently and only starts
the next stage of a chain once the whole previous batch has succeeded.
"""
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from image_library.domain.exceptions import TaskFailure

logger = logging.getLogger(__name__)

FailureCallback = Callable[[TaskFailure], None]


@dataclass
class Task:
    name: str
    handler: Callable[[], Any]
    connection: str = "sync"
    queue: str = "default"


@dataclass
class Batch:
    tasks: list[Task]
    name: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    cancelled: bool = False
    failures: list[TaskFailure] = field(default_factory=list)

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and not self.failures


@dataclass
class ChainResult:
    completed: bool
    stages_run: int
    failure: TaskFailure | None = None


class TaskQueue(ABC):
    def __init__(self, connection: str = "sync", queue: str = "default") -> None:
        self.connection = connection
        self.queue = queue
        self._failure_callbacks: list[FailureCallback] = []

    def on_failure(self, callback: FailureCallback) -> None:
        self._failure_callbacks.append(callback)

    def task(self, name: str, handler: Callable[[], Any]) -> Task:
        return Task(name=name, handler=handler, connection=self.connection, queue=self.queue)

    def batch(self, tasks: Sequence[Task], name: str = "") -> Batch:
        return Batch(tasks=list(tasks), name=name)

    @abstractmethod
    def enqueue(self, task: Task) -> Future:
        """Run one task; the future holds its result or its TaskFailure."""

    @abstractmethod
    def chain(
        self,
        stages: Sequence[Batch],
        on_complete: Callable[[ChainResult], None] | None = None,
        on_failure: FailureCallback | None = None,
    ) -> Future:
        """Run batches in order, stopping at the first that does not succeed."""

    def close(self) -> None:
        """Release worker resources; a no-op for inline queues."""

    # --------- shared execution ---------
    def _run(self, task: Task, batch: Batch | None = None) -> tuple[Any, TaskFailure | None]:
        if batch is not None and batch.cancelled:
            logger.debug("Skipping %s, batch %s cancelled", task.name, batch.name or batch.id)
            return None, None
        try:
            return task.handler(), None
        except Exception as exc:
            failure = TaskFailure(task.name, exc)
            logger.exception("Task %s failed on %s/%s", task.name, task.connection, task.queue)
            if batch is not None:
                batch.failures.append(failure)
                batch.cancel()
            self._report(failure)
            return None, failure

    def _report(self, failure: TaskFailure, extra: FailureCallback | None = None) -> None:
        callbacks = list(self._failure_callbacks)
        if extra is not None:
            callbacks.append(extra)
        for callback in callbacks:
            callback(failure)

    def _run_chain(
        self,
        stages: Sequence[Batch],
        run_batch: Callable[[Batch], None],
        on_complete: Callable[[ChainResult], None] | None,
        on_failure: FailureCallback | None,
    ) -> ChainResult:
        result = ChainResult(completed=True, stages_run=0)
        for index, stage in enumerate(stages):
            run_batch(stage)
            result.stages_run += 1
            if not stage.succeeded:
                remaining = len(stages) - index - 1
                if remaining:
                    logger.warning(
                        "Batch %s did not complete; skipping %d later stage(s)",
                        stage.name or stage.id,
                        remaining,
                    )
                result.completed = False
                result.failure = stage.failures[0] if stage.failures else None
                break
        if not result.completed and result.failure is not None and on_failure is not None:
            on_failure(result.failure)
        if on_complete is not None:
            on_complete(result)
        return result


class SyncTaskQueue(TaskQueue):
    """Runs tasks immediately, like a ``sync`` queue connection."""

    def enqueue(self, task: Task) -> Future:
        future: Future = Future()
        value, failure = self._run(task)
        if failure is not None:
            future.set_exception(failure)
        else:
            future.set_result(value)
        return future

    def chain(self, stages, on_complete=None, on_failure=None) -> Future:
        future: Future = Future()
        future.set_result(self._run_chain(stages, self._run_batch, on_complete, on_failure))
        return future

    def _run_batch(self, batch: Batch) -> None:
        for task in batch.tasks:
            self._run(task, batch)


class ThreadPoolTaskQueue(TaskQueue):
    """Runs batch members on a worker pool; chains are coordinated on their own thread."""

    def __init__(self, connection: str = "threads", queue: str = "default", max_workers: int = 4) -> None:
        super().__init__(connection, queue)
        self._workers = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="image-library")
        self._coordinator = ThreadPoolExecutor(max_workers=1, thread_name_prefix="image-library-chain")

    def enqueue(self, task: Task) -> Future:
        future: Future = Future()

        def run() -> None:
            value, failure = self._run(task)
            if failure is not None:
                future.set_exception(failure)
            else:
                future.set_result(value)

        self._workers.submit(run)
        return future

    def chain(self, stages, on_complete=None, on_failure=None) -> Future:
        return self._coordinator.submit(self._run_chain, stages, self._run_batch, on_complete, on_failure)

    def _run_batch(self, batch: Batch) -> None:
        futures = [self._workers.submit(self._run, task, batch) for task in batch.tasks]
        wait(futures)

    def close(self) -> None:
        self._coordinator.shutdown(wait=True)
        self._workers.shutdown(wait=True)


def make_queue(connection: str, queue: str = "default") -> TaskQueue:
    if connection == "sync":
        return SyncTaskQueue(connection, queue)
    return ThreadPoolTaskQueue(connection, queue)
