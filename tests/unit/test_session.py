"""Unit tests for meshnow.core.session."""

from __future__ import annotations

from meshnow.core.models import Task, TaskKind, TaskStatus, TextTo3D
from meshnow.core.session import Session


def test_begin_resets_previous_state():
    session = Session()
    session.begin(TextTo3D("a red cube"))
    session.task_created("t1")
    session.apply(Task(task_id="t1", status=TaskStatus.SUCCEEDED, progress=100))
    session.fail("old error")

    session.begin(TextTo3D("a blue sphere"))

    assert session.task is None
    assert session.task_id is None
    assert session.error is None
    assert session.generating
    assert session.kind is TaskKind.TEXT_TO_3D


def test_apply_replaces_snapshot_and_ends_on_terminal():
    session = Session()
    session.begin(TextTo3D("a red cube"))
    session.task_created("t1")

    assert session.apply(Task(task_id="t1", status=TaskStatus.IN_PROGRESS, progress=30))
    assert session.generating
    assert session.apply(Task(task_id="t1", status=TaskStatus.SUCCEEDED, progress=100))
    assert session.task.progress == 100
    assert not session.generating


def test_snapshot_for_other_task_is_ignored():
    session = Session()
    session.begin(TextTo3D("a red cube"))
    session.task_created("t2")
    assert not session.apply(Task(task_id="t1", status=TaskStatus.SUCCEEDED))
    assert session.task is None


def test_fail_stops_generating():
    session = Session()
    session.begin(TextTo3D("a red cube"))
    session.fail("Meshy API error 500")
    assert session.error == "Meshy API error 500"
    assert not session.generating


def test_failure_for_other_task_is_ignored():
    session = Session()
    session.begin(TextTo3D("a red cube"))
    session.task_created("t2")
    assert not session.fail("Task canceled", task_id="t1")
    assert session.error is None
    assert session.generating
    assert session.fail("Generation failed", task_id="t2")
    assert not session.generating
