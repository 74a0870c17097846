"""HTTP client wrapper for Meshy OpenAPI endpoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

import httpx

from meshnow.core.errors import TransportError, UpstreamError, ValidationError
from meshnow.core.http import json_object, raise_for_status
from meshnow.core.models import (
    GenerationRequest,
    ImageTo3D,
    MultiImageTo3D,
    Task,
    TaskKind,
    TextTo3D,
    request_kind,
)

BASE_URL = "https://api.meshy.ai"

TASK_PATHS: Dict[TaskKind, str] = {
    TaskKind.TEXT_TO_3D: "/openapi/v2/text-to-3d",
    TaskKind.IMAGE_TO_3D: "/openapi/v1/image-to-3d",
    TaskKind.MULTI_IMAGE_TO_3D: "/openapi/v1/multi-image-to-3d",
}

logger = logging.getLogger(__name__)


def build_payload(request: GenerationRequest) -> dict:
    """Translate a generation request into the Meshy request body."""
    match request:
        case TextTo3D(prompt=prompt, art_style=art_style):
            return {
                "mode": "preview",
                "prompt": prompt,
                "art_style": art_style,
                "should_remesh": True,
            }
        case ImageTo3D(image_url=image_url):
            return {
                "image_url": image_url,
                "enable_pbr": True,
                "should_remesh": True,
                "should_texture": True,
            }
        case MultiImageTo3D(image_urls=image_urls):
            return {
                "image_urls": list(image_urls),
                "enable_pbr": True,
                "should_remesh": True,
                "should_texture": True,
            }
    raise TypeError(f"Unsupported generation request: {type(request).__name__}")


class MeshyClient:
    """Encapsulates Meshy task creation, status queries and downloads."""

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ValidationError("Please enter your Meshy API key")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = httpx.Client(timeout=timeout, transport=transport, follow_redirects=True)

    def __enter__(self) -> "MeshyClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _build_url(self, kind: TaskKind, suffix: str = "") -> str:
        return f"{self.base_url}{TASK_PATHS[kind]}{suffix}"

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = self._http.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"Meshy API request failed: {exc}") from exc
        raise_for_status(response, "Meshy")
        return response

    def validate_key(self) -> bool:
        """Validate the API key with a lightweight Meshy request."""
        url = self._build_url(TaskKind.IMAGE_TO_3D, "/nonexistent")
        try:
            response = self._http.get(url, headers=self._headers())
        except httpx.HTTPError:
            return False
        if response.status_code in {401, 403}:
            return False
        if response.status_code == 404:
            return True
        return 200 <= response.status_code < 300

    def create_task(self, request: GenerationRequest) -> str:
        """Create a generation task and return its id."""
        kind = request_kind(request)
        response = self._request("POST", self._build_url(kind), json=build_payload(request))
        data = json_object(response, "Meshy")
        task_id = data.get("result") or data.get("id")
        if not task_id:
            raise UpstreamError("Meshy API response missing task id", status_code=502)
        logger.info("Created %s task %s", kind.value, task_id)
        return str(task_id)

    def get_task(self, task_id: str, kind: TaskKind = TaskKind.IMAGE_TO_3D) -> Task:
        """Retrieve the current snapshot of a task."""
        payload = self.get_task_payload(task_id, kind)
        return Task.from_payload(payload, task_id=task_id, kind=kind)

    def get_task_payload(self, task_id: str, kind: TaskKind = TaskKind.IMAGE_TO_3D) -> dict:
        """Retrieve the raw task JSON, as relayed to browser clients."""
        if not task_id:
            raise ValidationError("Task ID is required")
        response = self._request("GET", self._build_url(kind, f"/{task_id}"))
        return json_object(response, "Meshy")

    def download_file(self, url: str, destination: Path) -> Path:
        """Stream a result file to disk."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._http.stream("GET", url) as response:
                if response.status_code >= 400:
                    response.read()
                    raise_for_status(response, "Meshy")
                with destination.open("wb") as handle:
                    for chunk in response.iter_bytes():
                        handle.write(chunk)
        except httpx.HTTPError as exc:
            destination.unlink(missing_ok=True)
            raise TransportError(f"Meshy download failed: {exc}") from exc
        logger.info("Downloaded %s", destination)
        return destination
