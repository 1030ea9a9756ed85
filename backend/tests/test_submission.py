"""
Tests for the student side of an attempt.
"""

from exam_grading.models import Answer, AnswerGrade, Attempt, AttemptStatus, ExamStatus, QuestionType
from exam_grading.services import submission
from helpers import option

MCQ = QuestionType.MCQ.value
SHORT = QuestionType.SHORT_ANSWER.value
LONG = QuestionType.LONG_ANSWER.value


class TestStartAttempt:
    """Tests for starting and resuming attempts."""

    def test_starts_in_progress(self, db, exam, student_actor) -> None:
        result = submission.start_attempt(db, student_actor, exam.id)

        assert result.success
        assert result.data["status"] == AttemptStatus.IN_PROGRESS.value
        assert result.data["attempt_number"] == 1
        assert result.data["resumed"] is False
        assert result.data["started_at"] is not None

    def test_resumes_open_attempt(self, db, exam, student_actor) -> None:
        first = submission.start_attempt(db, student_actor, exam.id)
        second = submission.start_attempt(db, student_actor, exam.id)

        assert second.data["attempt_id"] == first.data["attempt_id"]
        assert second.data["resumed"] is True
        assert db.query(Attempt).count() == 1

    def test_max_attempts_enforced(self, db, exam, student_actor, make_attempt) -> None:
        exam.max_attempts = 1
        db.commit()
        make_attempt(AttemptStatus.GRADED)

        result = submission.start_attempt(db, student_actor, exam.id)

        assert not result.success
        assert "Maximum attempts (1)" in result.error

    def test_draft_exam_is_closed(self, db, exam, student_actor) -> None:
        exam.status = ExamStatus.DRAFT.value
        db.commit()

        result = submission.start_attempt(db, student_actor, exam.id)

        assert result.error == "Exam is not open for attempts"

    def test_teachers_cannot_start(self, db, exam, teacher_actor) -> None:
        result = submission.start_attempt(db, teacher_actor, exam.id)

        assert result.error == "Only students can take exams"


class TestSaveAnswer:
    """Tests for saving answers while in progress."""

    def test_saves_and_replaces_answer(self, db, questions, make_attempt, student_actor) -> None:
        attempt = make_attempt(AttemptStatus.IN_PROGRESS)
        exam_question = questions[SHORT]

        submission.save_answer(db, student_actor, attempt.id, exam_question.id, "first draft")
        result = submission.save_answer(db, student_actor, attempt.id, exam_question.id, "final answer")

        assert result.success
        answers = db.query(Answer).filter(Answer.attempt_id == attempt.id).all()
        assert len(answers) == 1
        assert answers[0].answer_text == "final answer"

    def test_option_must_belong_to_question(self, db, questions, make_attempt, student_actor) -> None:
        attempt = make_attempt(AttemptStatus.IN_PROGRESS)
        mcq = questions[MCQ]

        ok = submission.save_answer(db, student_actor, attempt.id, mcq.id,
                                    selected_option_id=option(mcq, correct=True).id)
        bad = submission.save_answer(db, student_actor, attempt.id, mcq.id,
                                     selected_option_id="not-an-option")

        assert ok.success
        assert bad.error == "Option does not belong to this question"

    def test_only_owner_can_save(self, db, questions, make_attempt, other_teacher, student_actor) -> None:
        attempt = make_attempt(AttemptStatus.IN_PROGRESS, student_id=other_teacher.id)

        result = submission.save_answer(db, student_actor, attempt.id, questions[SHORT].id, "hi")

        assert result.error == "This attempt belongs to another student"

    def test_submitted_attempt_is_read_only(self, db, questions, make_attempt, student_actor) -> None:
        attempt = make_attempt(AttemptStatus.SUBMITTED)

        result = submission.save_answer(db, student_actor, attempt.id, questions[SHORT].id, "late")

        assert result.error == "Attempt is not in progress"


class TestSubmitAttempt:
    """Tests for submitting an attempt."""

    def test_submit_grades_multiple_choice(self, db, questions, make_attempt, student_actor) -> None:
        attempt = make_attempt(AttemptStatus.IN_PROGRESS, {
            MCQ: option(questions[MCQ], correct=True).id,
            SHORT: "Osmosis is the movement of water",
        })

        result = submission.submit_attempt(db, student_actor, attempt.id)

        assert result.success
        assert result.data["status"] == AttemptStatus.SUBMITTED.value
        assert result.data["mcq_marks"] == 2
        assert db.query(AnswerGrade).count() == 1

    def test_multiple_choice_only_settles_to_grading(self, db, questions, make_attempt, student_actor) -> None:
        attempt = make_attempt(AttemptStatus.IN_PROGRESS, {MCQ: None})

        result = submission.submit_attempt(db, student_actor, attempt.id)

        assert result.data["status"] == AttemptStatus.GRADING.value

    def test_cannot_submit_twice(self, db, make_attempt, student_actor) -> None:
        attempt = make_attempt(AttemptStatus.IN_PROGRESS)
        submission.submit_attempt(db, student_actor, attempt.id)

        result = submission.submit_attempt(db, student_actor, attempt.id)

        assert not result.success
