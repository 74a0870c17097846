"""Image encoding helpers for Meshy requests."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

from meshnow.core.errors import ValidationError
from meshnow.core.models import MAX_IMAGES


@dataclass
class ImagePayload:
    """Container for image bytes and metadata."""

    data: bytes
    filename: str
    mime_type: str

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.mime_type};base64,{encoded}"


def _detect_mime_type(path: Path, header: bytes) -> str:
    if header.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if header.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    suffix = path.suffix.lower()
    if suffix == ".png":
        return "image/png"
    if suffix in {".jpg", ".jpeg"}:
        return "image/jpeg"
    raise ValidationError("Unsupported image format. Use PNG or JPEG.")


def encode_image(path: str) -> ImagePayload:
    """Load an image file and detect its type."""
    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except OSError as exc:
        raise ValidationError(f"Could not read image {file_path.name}: {exc}") from exc
    mime_type = _detect_mime_type(file_path, data[:8])
    return ImagePayload(data=data, filename=file_path.name, mime_type=mime_type)


def encode_image_to_data_uri(path: str) -> str:
    """Return a base64 data URI for a supported image file."""
    return encode_image(path).to_data_uri()


class ImageInputSet:
    """Ordered set of up to four encoded images for multi-image generation.

    Images beyond the capacity are dropped, so the set always holds the first
    ``MAX_IMAGES`` images in the order they were added.
    """

    def __init__(self, images: Iterable[str] = ()) -> None:
        self._images: List[str] = []
        self.add(images)

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self):
        return iter(self._images)

    @property
    def images(self) -> Tuple[str, ...]:
        return tuple(self._images)

    @property
    def remaining(self) -> int:
        return MAX_IMAGES - len(self._images)

    def add(self, images: Iterable[str]) -> int:
        """Append images while capacity remains; return how many were kept."""
        kept = [image for image in images if image][: self.remaining]
        self._images.extend(kept)
        return len(kept)

    def add_files(self, paths: Iterable[str]) -> int:
        """Encode image files and append them while capacity remains."""
        selected = list(paths)[: self.remaining]
        return self.add(encode_image_to_data_uri(path) for path in selected)

    def remove(self, index: int) -> None:
        del self._images[index]

    def clear(self) -> None:
        self._images.clear()
