"""
Tests for the notification and audit sinks and the structured log format.
"""

import json
import logging
from unittest.mock import MagicMock

from fastapi import BackgroundTasks
from sqlalchemy import create_engine

from exam_grading.logging_config import StructuredJsonFormatter, request_id_var
from exam_grading.models import AuditLog, Notification
from exam_grading.services.side_effects import dispatch, notify, record_audit


class TestSinks:
    """Tests for notify and record_audit."""

    def test_notify_writes_in_own_session(self, engine, student, fresh) -> None:
        notify(engine, student.id, "RESULT_READY", "Result ready", "Your result is out",
               link="/student/results/r1")

        note = fresh().query(Notification).one()
        assert note.user_id == student.id
        assert note.link == "/student/results/r1"

    def test_record_audit_serializes_metadata(self, engine, teacher, fresh) -> None:
        record_audit(engine, teacher.id, "FINALIZE_ATTEMPT", "ATTEMPT", "a1", {"grade": "A"})

        entry = fresh().query(AuditLog).one()
        assert entry.action == "FINALIZE_ATTEMPT"
        assert json.loads(entry.details) == {"grade": "A"}

    def test_failures_are_swallowed(self) -> None:
        # No tables exist on a bare in-memory database
        broken = create_engine("sqlite://")

        notify(broken, "u1", "RESULT_READY", "t", "b")
        record_audit(broken, "u1", "GRADE_ANSWER", "ANSWER", "x")


class TestDispatch:
    def test_runs_inline_without_request(self) -> None:
        func = MagicMock()

        dispatch(None, func, 1, key="v")

        func.assert_called_once_with(1, key="v")

    def test_inline_failure_does_not_propagate(self) -> None:
        func = MagicMock(side_effect=RuntimeError("boom"), __name__="boom")

        dispatch(None, func)

    def test_deferred_to_background_tasks(self) -> None:
        func = MagicMock()
        background = BackgroundTasks()

        dispatch(background, func, "x")

        func.assert_not_called()
        assert len(background.tasks) == 1


class TestStructuredJsonFormatter:
    def test_entry_shape(self) -> None:
        token = request_id_var.set("req-1")
        try:
            record = logging.LogRecord("grading", logging.INFO, __file__, 1, "Finalized", None, None)
            record.channel = "grading"
            record.context = {"attempt_id": "a1"}
            record.extra_data = {"percentage": 80.0}

            entry = json.loads(StructuredJsonFormatter().format(record))
        finally:
            request_id_var.reset(token)

        assert entry["level"] == "INFO"
        assert entry["channel"] == "grading"
        assert entry["context"] == {"request_id": "req-1", "attempt_id": "a1"}
        assert entry["extra"] == {"percentage": 80.0}
