"""Unit tests for meshnow.core.meshy_client using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from meshnow.core.errors import AuthError, TransportError, UpstreamError, ValidationError
from meshnow.core.meshy_client import MeshyClient, build_payload
from meshnow.core.models import ImageTo3D, MultiImageTo3D, TaskKind, TaskStatus, TextTo3D


def make_client(transport) -> MeshyClient:
    return MeshyClient("msy_key", base_url="https://meshy.test", transport=transport)


class TestCreateTask:
    def test_text_to_3d(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json={"result": "t1"}))
        with make_client(transport) as client:
            task_id = client.create_task(TextTo3D("a red cube", "realistic"))

        assert task_id == "t1"
        (request,) = transport.calls()
        assert request.method == "POST"
        assert request.url.path == "/openapi/v2/text-to-3d"
        assert request.headers["Authorization"] == "Bearer msy_key"
        assert transport.body(request) == {
            "mode": "preview",
            "prompt": "a red cube",
            "art_style": "realistic",
            "should_remesh": True,
        }

    def test_image_to_3d(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(202, json={"result": "t2"}))
        with make_client(transport) as client:
            assert client.create_task(ImageTo3D("data:image/png;base64,AA==")) == "t2"
        (request,) = transport.calls()
        assert request.url.path == "/openapi/v1/image-to-3d"
        assert transport.body(request)["image_url"] == "data:image/png;base64,AA=="

    def test_multi_image_to_3d(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json={"result": "t3"}))
        with make_client(transport) as client:
            client.create_task(MultiImageTo3D(("a", "b")))
        (request,) = transport.calls()
        assert request.url.path == "/openapi/v1/multi-image-to-3d"
        assert transport.body(request)["image_urls"] == ["a", "b"]

    def test_missing_task_id(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json={}))
        with make_client(transport) as client, pytest.raises(UpstreamError, match="missing task id"):
            client.create_task(TextTo3D("a red cube"))

    def test_html_create_body(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        with make_client(transport) as client, pytest.raises(UpstreamError, match="invalid JSON"):
            client.create_task(TextTo3D("a red cube"))

    def test_five_images_never_reach_the_network(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json={"result": "x"}))
        with make_client(transport) as client:
            with pytest.raises(ValidationError):
                client.create_task(MultiImageTo3D(("a", "b", "c", "d", "e")))
        assert transport.calls() == []


class TestErrors:
    def test_rejected_key(self, recording_transport):
        transport = recording_transport(
            lambda request: httpx.Response(401, json={"message": "Invalid API key"})
        )
        with make_client(transport) as client, pytest.raises(AuthError) as excinfo:
            client.create_task(TextTo3D("a red cube"))
        assert excinfo.value.status_code == 401
        assert "Invalid API key" in str(excinfo.value)

    def test_upstream_error_carries_status_and_body(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(500, text="upstream broke"))
        with make_client(transport) as client, pytest.raises(UpstreamError) as excinfo:
            client.get_task("t1", TaskKind.TEXT_TO_3D)
        assert excinfo.value.status_code == 500
        assert excinfo.value.body == "upstream broke"
        assert str(excinfo.value) == "Meshy API error 500: upstream broke"

    def test_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(httpx.MockTransport(handler)) as client, pytest.raises(TransportError):
            client.get_task("t1")

    def test_missing_api_key(self):
        with pytest.raises(ValidationError):
            MeshyClient("")

    def test_empty_task_id(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json={}))
        with make_client(transport) as client, pytest.raises(ValidationError):
            client.get_task("")
        assert transport.calls() == []


class TestGetTask:
    @pytest.mark.parametrize(
        "kind, path",
        [
            (TaskKind.TEXT_TO_3D, "/openapi/v2/text-to-3d/t1"),
            (TaskKind.IMAGE_TO_3D, "/openapi/v1/image-to-3d/t1"),
            (TaskKind.MULTI_IMAGE_TO_3D, "/openapi/v1/multi-image-to-3d/t1"),
        ],
    )
    def test_status_path_per_kind(self, recording_transport, task_payload, kind, path):
        transport = recording_transport(lambda request: httpx.Response(200, json=task_payload()))
        with make_client(transport) as client:
            task = client.get_task("t1", kind)
        assert transport.calls()[0].url.path == path
        assert task.status is TaskStatus.PENDING
        assert task.kind is kind

    def test_html_status_body(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        with make_client(transport) as client, pytest.raises(UpstreamError, match="invalid JSON") as excinfo:
            client.get_task("t1")
        assert excinfo.value.status_code == 502

    def test_status_body_not_an_object(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json=[1, 2]))
        with make_client(transport) as client, pytest.raises(UpstreamError, match="invalid JSON"):
            client.get_task_payload("t1")

    def test_refetching_unchanged_task_gives_equal_snapshots(self, recording_transport, task_payload):
        payload = task_payload(status="IN_PROGRESS", progress=35, preceding_tasks=2)
        transport = recording_transport(lambda request: httpx.Response(200, json=payload))
        with make_client(transport) as client:
            first = client.get_task("t1")
            second = client.get_task("t1")
        assert first == second
        assert len(transport.calls("GET")) == 2


class TestValidateKey:
    @pytest.mark.parametrize("status, expected", [(404, True), (200, True), (401, False), (403, False)])
    def test_probe_status(self, status, expected):
        transport = httpx.MockTransport(lambda request: httpx.Response(status))
        with make_client(transport) as client:
            assert client.validate_key() is expected


class TestDownload:
    def test_download_writes_file(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"glTF-bytes"))
        destination = tmp_path / "out" / "model.glb"
        with make_client(transport) as client:
            assert client.download_file("https://assets.test/m.glb", destination) == destination
        assert destination.read_bytes() == b"glTF-bytes"

    def test_expired_url(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(403, text="Request has expired"))
        destination = tmp_path / "model.glb"
        with make_client(transport) as client, pytest.raises(AuthError):
            client.download_file("https://assets.test/m.glb", destination)
        assert not destination.exists()


def test_payload_for_each_variant():
    assert build_payload(TextTo3D("cube", "sculpture"))["art_style"] == "sculpture"
    assert build_payload(ImageTo3D("u"))["should_texture"] is True
    assert build_payload(MultiImageTo3D(("u",)))["image_urls"] == ["u"]
