"""Shared pytest fixtures for MeshNow tests."""

from __future__ import annotations

import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from meshnow.core.config import MeshNowConfig


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def calls(self, method: Optional[str] = None) -> List[httpx.Request]:
        if method is None:
            return list(self.requests)
        return [request for request in self.requests if request.method == method]

    @staticmethod
    def body(request: httpx.Request) -> Dict[str, object]:
        return json.loads(request.content or b"{}")


@pytest.fixture
def recording_transport() -> Callable[[Callable[[httpx.Request], httpx.Response]], RecordingTransport]:
    """Build a RecordingTransport from a request handler."""
    return RecordingTransport


@pytest.fixture
def task_payload() -> Callable[..., Dict[str, object]]:
    """Build a Meshy task JSON body with overridable fields."""

    def _build(**overrides: object) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "id": "t1",
            "type": "text-to-3d-preview",
            "status": "PENDING",
            "progress": 0,
            "preceding_tasks": 0,
            "model_urls": {},
            "thumbnail_url": "",
            "texture_urls": [],
            "created_at": 1700000000000,
            "finished_at": 0,
            "task_error": {"message": ""},
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def test_config() -> MeshNowConfig:
    """Configuration pointing at fake upstream hosts."""
    return MeshNowConfig(
        meshy_base_url="https://meshy.test",
        formnow_base_url="https://formnow.test/form-now",
        poll_interval_s=0.01,
        poll_max_attempts=0,
        embedded_relay=False,
    )
