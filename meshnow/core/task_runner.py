"""Qt background workers for task polling and print uploads."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QThread, Signal

from meshnow.core.errors import MeshNowError
from meshnow.core.meshy_client import MeshyClient
from meshnow.core.models import Task, TaskKind
from meshnow.core.task_poller import DEFAULT_INTERVAL_S, PollHandle, TaskPoller
from meshnow.core.uploader import UploadOrchestrator

logger = logging.getLogger(__name__)


class TaskRunner(QThread):
    """Runs the Meshy status poll loop in a background thread."""

    taskUpdated = Signal(object)
    taskCompleted = Signal(object)
    # task id, message
    taskFailed = Signal(str, str)

    def __init__(
        self,
        client: MeshyClient,
        task_id: str,
        kind: TaskKind,
        interval_s: float = DEFAULT_INTERVAL_S,
        max_attempts: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.task_id = task_id
        self._handle = PollHandle()
        self._poller = TaskPoller(client.get_task, task_id, kind, interval_s, max_attempts)

    def run(self) -> None:
        """Execute the monitoring loop."""
        try:
            task = self._poller.run(self._handle, self._handle_task)
        except MeshNowError as exc:
            self._fail(str(exc))
            return
        except Exception as exc:
            logger.exception("Unexpected error while polling task %s", self.task_id)
            self._fail(f"Unexpected error while polling: {exc}")
            return
        if task is not None and not self._handle.cancelled:
            self.taskCompleted.emit(task)

    def stop(self) -> None:
        """Stop the loop; results arriving afterwards are dropped."""
        self._handle.cancel()

    def _fail(self, message: str) -> None:
        if not self._handle.cancelled:
            self.taskFailed.emit(self.task_id, message)

    def _handle_task(self, task: Task) -> None:
        if self._handle.cancelled:
            return
        self.taskUpdated.emit(task)


class UploadRunner(QThread):
    """Runs one upload handshake in a background thread."""

    stepChanged = Signal(str)
    uploadCompleted = Signal(object)
    uploadFailed = Signal(str)

    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        file_path: Optional[str] = None,
        model_url: Optional[str] = None,
    ) -> None:
        super().__init__()
        if not file_path and not model_url:
            raise ValueError("UploadRunner needs a file path or a model URL")
        self._orchestrator = orchestrator
        self._orchestrator.on_step = self.stepChanged.emit
        self._file_path = file_path
        self._model_url = model_url

    def run(self) -> None:
        try:
            if self._file_path:
                record = self._orchestrator.upload_file(self._file_path)
            else:
                record = self._orchestrator.upload_from_url(self._model_url)
        except MeshNowError as exc:
            logger.warning("Upload failed: %s", exc)
            self.uploadFailed.emit(str(exc))
            return
        except Exception as exc:
            logger.exception("Unexpected error during upload")
            self.uploadFailed.emit(f"Unexpected error during upload: {exc}")
            return
        self.uploadCompleted.emit(record)
