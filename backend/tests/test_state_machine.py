"""
Unit tests for the attempt state machine.
"""

import pytest

from exam_grading.errors import InvalidStateError, InvalidTransitionError
from exam_grading.models import AnswerGrade, AttemptStatus, GradeSource, QuestionType
from exam_grading.services.state_machine import can_transition, set_status, settle_status
from helpers import answer_for


class TestTransitions:
    """Tests for allowed and rejected status changes."""

    @pytest.mark.parametrize("current,target", [
        (AttemptStatus.NOT_STARTED, AttemptStatus.IN_PROGRESS),
        (AttemptStatus.IN_PROGRESS, AttemptStatus.SUBMITTED),
        (AttemptStatus.SUBMITTED, AttemptStatus.GRADING),
        (AttemptStatus.GRADING, AttemptStatus.SUBMITTED),
        (AttemptStatus.GRADING, AttemptStatus.GRADED),
        (AttemptStatus.SUBMITTED, AttemptStatus.GRADED),
        (AttemptStatus.GRADED, AttemptStatus.GRADING),
    ])
    def test_allowed(self, current: AttemptStatus, target: AttemptStatus) -> None:
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (AttemptStatus.NOT_STARTED, AttemptStatus.GRADED),
        (AttemptStatus.IN_PROGRESS, AttemptStatus.GRADING),
        (AttemptStatus.GRADED, AttemptStatus.SUBMITTED),
        (AttemptStatus.SUBMITTED, AttemptStatus.IN_PROGRESS),
    ])
    def test_rejected(self, current: AttemptStatus, target: AttemptStatus) -> None:
        assert not can_transition(current, target)

    def test_set_status_rejects_illegal_jump(self, make_attempt) -> None:
        """Test that an illegal move raises and leaves the status alone."""
        attempt = make_attempt(AttemptStatus.IN_PROGRESS)

        with pytest.raises(InvalidTransitionError, match="IN_PROGRESS to GRADED"):
            set_status(attempt, AttemptStatus.GRADED)

        assert attempt.status == AttemptStatus.IN_PROGRESS.value

    def test_leaving_graded_requires_reopen(self, make_attempt) -> None:
        attempt = make_attempt(AttemptStatus.GRADED)

        with pytest.raises(InvalidTransitionError, match="GRADED to GRADING"):
            set_status(attempt, AttemptStatus.GRADING)

        set_status(attempt, AttemptStatus.GRADING, reopen=True)
        assert attempt.status == AttemptStatus.GRADING.value

    def test_set_status_same_status_is_noop(self, make_attempt) -> None:
        attempt = make_attempt(AttemptStatus.GRADED)

        previous = set_status(attempt, AttemptStatus.GRADED)

        assert previous == AttemptStatus.GRADED
        assert attempt.status == AttemptStatus.GRADED.value


class TestSettleStatus:
    """Tests for resolving status from grading completeness."""

    def test_partially_graded_settles_to_submitted(self, db, make_attempt, full_answers) -> None:
        attempt = make_attempt(AttemptStatus.GRADING, full_answers)

        assert settle_status(db, attempt) == AttemptStatus.SUBMITTED
        assert attempt.status == AttemptStatus.SUBMITTED.value

    def test_fully_graded_settles_to_grading(self, db, make_attempt, full_answers) -> None:
        attempt = make_attempt(AttemptStatus.SUBMITTED, full_answers)
        for answer in attempt.answers:
            db.add(AnswerGrade(answer_id=answer.id, graded_by=GradeSource.TEACHER.value,
                               marks_awarded=1, max_marks=answer.exam_question.marks))

        assert settle_status(db, attempt) == AttemptStatus.GRADING

    def test_attempt_without_answers_stays_submitted(self, db, make_attempt) -> None:
        attempt = make_attempt(AttemptStatus.SUBMITTED)

        assert settle_status(db, attempt) == AttemptStatus.SUBMITTED

    def test_graded_attempt_is_refused(self, db, make_attempt, full_answers) -> None:
        """Test that settling never moves a finalized attempt out of GRADED."""
        attempt = make_attempt(AttemptStatus.GRADED, full_answers)

        with pytest.raises(InvalidStateError, match="Reopen"):
            settle_status(db, attempt)

        assert attempt.status == AttemptStatus.GRADED.value

    def test_counts_unflushed_grades(self, db, make_attempt, full_answers) -> None:
        """Test that grades still pending in the session are counted."""
        attempt = make_attempt(AttemptStatus.SUBMITTED, {
            QuestionType.SHORT_ANSWER.value: full_answers[QuestionType.SHORT_ANSWER.value],
        })
        answer = answer_for(attempt, QuestionType.SHORT_ANSWER.value)
        db.add(AnswerGrade(answer_id=answer.id, graded_by=GradeSource.TEACHER.value,
                           marks_awarded=2, max_marks=3))

        assert settle_status(db, attempt) == AttemptStatus.GRADING
