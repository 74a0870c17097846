"""Shared dataclass models for generation tasks, uploads and requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Union

from meshnow.core.errors import ValidationError

MAX_PROMPT_LENGTH = 600
MAX_IMAGES = 4
ART_STYLES = ("realistic", "sculpture")


class TaskKind(str, Enum):
    """Generation endpoints exposed by Meshy."""

    TEXT_TO_3D = "text-to-3d"
    IMAGE_TO_3D = "image-to-3d"
    MULTI_IMAGE_TO_3D = "multi-image-to-3d"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.SUCCEEDED, TaskStatus.FAILED, TaskStatus.CANCELED})


def _coerce_progress(value: object) -> int:
    if value is None:
        return 0
    try:
        progress = float(value)
    except (TypeError, ValueError):
        return 0
    if 0 < progress < 1:
        progress *= 100
    return max(0, min(100, int(progress)))


@dataclass(frozen=True)
class Task:
    """Latest status snapshot of a Meshy task.

    Snapshots are never edited in place: every status query produces a new
    instance that replaces the previous one.
    """

    task_id: str
    status: TaskStatus
    progress: int = 0
    queue_position: int = 0
    model_urls: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    thumbnail_url: Optional[str] = None
    texture_urls: List[Dict[str, str]] = field(default_factory=list)
    created_at: Optional[int] = None
    finished_at: Optional[int] = None
    kind: Optional[TaskKind] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def model_url(self, fmt: str = "glb") -> Optional[str]:
        """Return the URL for a result format, if the service produced one."""
        return self.model_urls.get(fmt) or None

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, object],
        task_id: str = "",
        kind: Optional[TaskKind] = None,
    ) -> "Task":
        raw_status = str(payload.get("status") or TaskStatus.PENDING.value).upper()
        try:
            status = TaskStatus(raw_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown task status: {raw_status}") from exc

        model_urls = payload.get("model_urls") or {}
        if not isinstance(model_urls, Mapping):
            model_urls = {}
        task_error = payload.get("task_error") or {}
        message = task_error.get("message") if isinstance(task_error, Mapping) else None
        texture_urls = payload.get("texture_urls") or []

        try:
            queue_position = max(0, int(payload.get("preceding_tasks") or 0))
        except (TypeError, ValueError):
            queue_position = 0

        return cls(
            task_id=str(payload.get("id") or task_id),
            status=status,
            progress=_coerce_progress(payload.get("progress")),
            queue_position=queue_position,
            model_urls={str(k): str(v) for k, v in model_urls.items() if v},
            error=str(message) if message else None,
            thumbnail_url=payload.get("thumbnail_url") or None,
            texture_urls=list(texture_urls) if isinstance(texture_urls, list) else [],
            created_at=payload.get("created_at"),
            finished_at=payload.get("finished_at"),
            kind=kind,
        )


@dataclass(frozen=True)
class TextTo3D:
    prompt: str
    art_style: str = "realistic"

    def __post_init__(self) -> None:
        prompt = self.prompt.strip() if self.prompt else ""
        if not prompt:
            raise ValidationError("Please enter a prompt describing your 3D model")
        if len(prompt) > MAX_PROMPT_LENGTH:
            raise ValidationError(f"Prompt must be at most {MAX_PROMPT_LENGTH} characters")
        if self.art_style not in ART_STYLES:
            raise ValidationError(f"Art style must be one of: {', '.join(ART_STYLES)}")
        object.__setattr__(self, "prompt", prompt)


@dataclass(frozen=True)
class ImageTo3D:
    image_url: str

    def __post_init__(self) -> None:
        if not self.image_url:
            raise ValidationError("Please upload an image")


@dataclass(frozen=True)
class MultiImageTo3D:
    image_urls: tuple

    def __post_init__(self) -> None:
        urls = tuple(url for url in self.image_urls if url)
        if not urls:
            raise ValidationError("Please upload at least one image")
        if len(urls) > MAX_IMAGES:
            raise ValidationError(f"Maximum {MAX_IMAGES} images allowed")
        object.__setattr__(self, "image_urls", urls)


GenerationRequest = Union[TextTo3D, ImageTo3D, MultiImageTo3D]


def request_kind(request: GenerationRequest) -> TaskKind:
    """Map a generation request variant to the Meshy endpoint family."""
    match request:
        case TextTo3D():
            return TaskKind.TEXT_TO_3D
        case ImageTo3D():
            return TaskKind.IMAGE_TO_3D
        case MultiImageTo3D():
            return TaskKind.MULTI_IMAGE_TO_3D
    raise TypeError(f"Unsupported generation request: {type(request).__name__}")


class FileType(str, Enum):
    STL = "STL"
    OBJ = "OBJ"

    @classmethod
    def from_file_name(cls, file_name: str) -> "FileType":
        """Resolve the upload type from a file extension."""
        suffix = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
        if suffix == "obj":
            return cls.OBJ
        if suffix == "stl":
            return cls.STL
        raise ValidationError("Please select a valid STL or OBJ file")


class UploadStatus(str, Enum):
    PENDING = "PENDING"
    UPLOADED = "UPLOADED"
    FAILED = "FAILED"


@dataclass
class UploadRecord:
    """Form Now part-file record tracked through the upload handshake."""

    record_id: str
    status: UploadStatus
    file_type: FileType
    file_name: str
    signed_url: Optional[str] = None
    redirect_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def consume_signed_url(self) -> str:
        """Hand out the signed write URL once; it is cleared afterwards."""
        if not self.signed_url:
            raise ValidationError("Signed upload URL already used or missing")
        url = self.signed_url
        self.signed_url = None
        return url

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "UploadRecord":
        return cls(
            record_id=str(payload.get("id") or ""),
            status=UploadStatus(str(payload.get("status") or UploadStatus.PENDING.value).upper()),
            file_type=FileType(str(payload.get("file_type") or FileType.STL.value).upper()),
            file_name=str(payload.get("file_name") or ""),
            signed_url=payload.get("signed_url") or None,
            redirect_url=payload.get("redirect_url") or None,
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
        )
