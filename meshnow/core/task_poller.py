"""Polling loop that follows a Meshy task until it reaches a terminal state."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import httpx

from meshnow.core.errors import MeshNowError, PollTimeoutError, TaskFailedError
from meshnow.core.meshy_client import BASE_URL, MeshyClient
from meshnow.core.models import Task, TaskKind, TaskStatus

DEFAULT_INTERVAL_S = 2.0

logger = logging.getLogger(__name__)

StatusFetcher = Callable[[str, TaskKind], Task]
UpdateCallback = Callable[[Task], None]
ErrorCallback = Callable[[MeshNowError], None]


class PollHandle:
    """Cancellation token shared between a poll loop and its owner."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self.result: Optional[Task] = None
        self.error: Optional[MeshNowError] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self) -> None:
        """Stop polling; a response still in flight will be discarded."""
        self._cancelled.set()

    def sleep(self, seconds: float) -> bool:
        """Wait between polls. Returns True if cancelled while waiting."""
        return self._cancelled.wait(seconds)

    def join(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def _finish(self, result: Optional[Task] = None, error: Optional[MeshNowError] = None) -> None:
        self.result = result
        self.error = error
        self._done.set()


class TaskPoller:
    """Queries task status at a fixed interval, one query at a time.

    The next query is only scheduled after the previous one has returned, so
    a slow response never overlaps with the following tick.
    """

    def __init__(
        self,
        fetch_status: StatusFetcher,
        task_id: str,
        kind: TaskKind = TaskKind.IMAGE_TO_3D,
        interval_s: float = DEFAULT_INTERVAL_S,
        max_attempts: Optional[int] = None,
    ) -> None:
        if not task_id:
            raise ValueError("task_id must not be empty")
        self.fetch_status = fetch_status
        self.task_id = task_id
        self.kind = kind
        self.interval_s = interval_s
        self.max_attempts = max_attempts

    def run(self, handle: PollHandle, on_update: Optional[UpdateCallback] = None) -> Optional[Task]:
        """Poll until terminal; returns the final task, or None if cancelled.

        Raises the fetch error on transport or HTTP failure, ``TaskFailedError``
        when the task fails or is canceled upstream, and ``PollTimeoutError``
        when ``max_attempts`` queries did not reach a terminal state.
        """
        attempts = 0
        while not handle.cancelled:
            task = self.fetch_status(self.task_id, self.kind)
            attempts += 1
            if handle.cancelled:
                logger.debug("Discarding status for cancelled task %s", self.task_id)
                return None
            if on_update is not None:
                on_update(task)
            if task.is_terminal:
                return self._finish(task)
            if self.max_attempts is not None and attempts >= self.max_attempts:
                raise PollTimeoutError(
                    f"Task {self.task_id} did not finish after {attempts} status checks"
                )
            if handle.sleep(self.interval_s):
                break
        return None

    def _finish(self, task: Task) -> Task:
        logger.info("Task %s finished with status %s", self.task_id, task.status.value)
        if task.status is TaskStatus.FAILED:
            raise TaskFailedError(task.error or "Generation failed", task_id=self.task_id)
        if task.status is TaskStatus.CANCELED:
            raise TaskFailedError(task.error or "Task canceled", task_id=self.task_id)
        return task

    def start(
        self,
        on_update: Optional[UpdateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> PollHandle:
        """Run the loop on a background thread and return its handle."""
        handle = PollHandle()

        def _target() -> None:
            result: Optional[Task] = None
            error: Optional[MeshNowError] = None
            try:
                result = self.run(handle, on_update)
            except MeshNowError as exc:
                error = exc
                if not handle.cancelled:
                    logger.warning("Polling task %s stopped: %s", self.task_id, exc)
            except Exception as exc:
                logger.exception("Unexpected error while polling task %s", self.task_id)
                error = MeshNowError(f"Unexpected error while polling: {exc}")
            try:
                if error is not None and not handle.cancelled and on_error is not None:
                    on_error(error)
            finally:
                handle._finish(result=result, error=error)

        thread = threading.Thread(target=_target, name=f"poll-{self.task_id}", daemon=True)
        thread.start()
        return handle


def start_polling(
    task_id: str,
    api_key: str,
    kind: TaskKind,
    on_update: Optional[UpdateCallback] = None,
    on_error: Optional[ErrorCallback] = None,
    interval_s: float = DEFAULT_INTERVAL_S,
    max_attempts: Optional[int] = None,
    base_url: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> PollHandle:
    """Start polling a task with its own client and return the cancel handle."""
    client = MeshyClient(api_key, base_url=base_url or BASE_URL, transport=transport)
    poller = TaskPoller(client.get_task, task_id, kind, interval_s, max_attempts)
    return poller.start(on_update=on_update, on_error=on_error)
