"""Unit tests for meshnow.core.models."""

from __future__ import annotations

import pytest

from meshnow.core.errors import ValidationError
from meshnow.core.models import (
    FileType,
    ImageTo3D,
    MultiImageTo3D,
    Task,
    TaskKind,
    TaskStatus,
    TextTo3D,
    UploadRecord,
    UploadStatus,
    request_kind,
)


class TestTaskFromPayload:
    """Test Task.from_payload snapshot parsing."""

    def test_succeeded_task_exposes_model_urls(self, task_payload):
        payload = task_payload(
            status="SUCCEEDED",
            progress=100,
            model_urls={"glb": "https://assets.test/m.glb", "fbx": ""},
        )
        task = Task.from_payload(payload, kind=TaskKind.TEXT_TO_3D)

        assert task.status is TaskStatus.SUCCEEDED
        assert task.is_terminal
        assert task.progress == 100
        assert task.model_url("glb") == "https://assets.test/m.glb"
        assert task.model_url("fbx") is None
        assert task.kind is TaskKind.TEXT_TO_3D

    def test_lowercase_status_is_normalised(self, task_payload):
        task = Task.from_payload(task_payload(status="in_progress", progress=42))
        assert task.status is TaskStatus.IN_PROGRESS
        assert not task.is_terminal

    def test_fractional_progress_is_scaled(self, task_payload):
        assert Task.from_payload(task_payload(progress=0.5)).progress == 50

    def test_progress_is_clamped(self, task_payload):
        assert Task.from_payload(task_payload(progress=250)).progress == 100
        assert Task.from_payload(task_payload(progress="n/a")).progress == 0

    def test_queue_position_and_error(self, task_payload):
        payload = task_payload(
            status="FAILED",
            preceding_tasks=3,
            task_error={"message": "Image contains no object"},
        )
        task = Task.from_payload(payload)
        assert task.queue_position == 3
        assert task.error == "Image contains no object"

    def test_empty_error_message_is_none(self, task_payload):
        assert Task.from_payload(task_payload()).error is None

    def test_task_id_falls_back_to_argument(self, task_payload):
        payload = task_payload()
        del payload["id"]
        assert Task.from_payload(payload, task_id="abc").task_id == "abc"

    def test_unknown_status_rejected(self, task_payload):
        with pytest.raises(ValidationError):
            Task.from_payload(task_payload(status="EXPIRED"))

    def test_same_payload_gives_equal_snapshots(self, task_payload):
        payload = task_payload(status="IN_PROGRESS", progress=10)
        assert Task.from_payload(payload) == Task.from_payload(dict(payload))


class TestGenerationRequests:
    """Test the generation request variants."""

    def test_text_prompt_is_stripped(self):
        request = TextTo3D("  a red cube  ", "realistic")
        assert request.prompt == "a red cube"
        assert request_kind(request) is TaskKind.TEXT_TO_3D

    def test_text_requires_prompt(self):
        with pytest.raises(ValidationError):
            TextTo3D("   ")

    def test_text_prompt_length_limit(self):
        TextTo3D("x" * 600)
        with pytest.raises(ValidationError):
            TextTo3D("x" * 601)

    def test_text_rejects_unknown_art_style(self):
        with pytest.raises(ValidationError):
            TextTo3D("a red cube", "cartoon")

    def test_image_requires_url(self):
        with pytest.raises(ValidationError):
            ImageTo3D("")
        assert request_kind(ImageTo3D("data:image/png;base64,AA==")) is TaskKind.IMAGE_TO_3D

    def test_multi_image_accepts_one_to_four(self):
        request = MultiImageTo3D(("a", "b", "c", "d"))
        assert request.image_urls == ("a", "b", "c", "d")
        assert request_kind(request) is TaskKind.MULTI_IMAGE_TO_3D

    def test_multi_image_rejects_empty(self):
        with pytest.raises(ValidationError, match="at least one"):
            MultiImageTo3D(())

    def test_multi_image_rejects_five(self):
        with pytest.raises(ValidationError, match="Maximum 4"):
            MultiImageTo3D(("a", "b", "c", "d", "e"))


class TestUploadModels:
    """Test FileType and UploadRecord."""

    @pytest.mark.parametrize(
        "name, expected",
        [("part.obj", FileType.OBJ), ("PART.STL", FileType.STL), ("a.b.obj", FileType.OBJ)],
    )
    def test_file_type_from_name(self, name, expected):
        assert FileType.from_file_name(name) is expected

    @pytest.mark.parametrize("name", ["model.glb", "model", "stl"])
    def test_file_type_rejects_other_files(self, name):
        with pytest.raises(ValidationError):
            FileType.from_file_name(name)

    def test_signed_url_is_consumed_once(self):
        record = UploadRecord.from_payload(
            {
                "id": "pf_1",
                "signed_url": "https://storage.test/put?sig=1",
                "status": "PENDING",
                "file_type": "OBJ",
                "file_name": "meshy-model.obj",
                "created_at": "2026-01-01T00:00:00Z",
            }
        )
        assert record.status is UploadStatus.PENDING
        assert record.consume_signed_url() == "https://storage.test/put?sig=1"
        assert record.signed_url is None
        with pytest.raises(ValidationError):
            record.consume_signed_url()
