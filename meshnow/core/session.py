"""Per-window state for one generation and its optional print upload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from meshnow.core.models import GenerationRequest, Task, TaskKind, UploadRecord, request_kind


@dataclass
class Session:
    """Owns the current request, task snapshot and upload record.

    A session is reset before each new generation; nothing survives it.
    """

    request: Optional[GenerationRequest] = None
    task_id: Optional[str] = None
    task: Optional[Task] = None
    upload: Optional[UploadRecord] = None
    error: Optional[str] = None
    generating: bool = False

    @property
    def kind(self) -> Optional[TaskKind]:
        return request_kind(self.request) if self.request is not None else None

    def begin(self, request: GenerationRequest) -> None:
        self.reset()
        self.request = request
        self.generating = True

    def task_created(self, task_id: str) -> None:
        self.task_id = task_id

    def apply(self, task: Task) -> bool:
        """Replace the held snapshot; snapshots for another task are ignored."""
        if task.task_id != self.task_id:
            return False
        self.task = task
        if task.is_terminal:
            self.generating = False
        return True

    def fail(self, message: str, task_id: Optional[str] = None) -> bool:
        """Record a failure; failures reported for another task are ignored."""
        if task_id is not None and task_id != self.task_id:
            return False
        self.error = message
        self.generating = False
        return True

    def reset(self) -> None:
        self.request = None
        self.task_id = None
        self.task = None
        self.upload = None
        self.error = None
        self.generating = False
