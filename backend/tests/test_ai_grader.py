"""
Unit tests for AI-assisted grading of single free-text answers.
"""

from exam_grading.ai.client import AIGradingError
from exam_grading.config import MAX_ANSWER_LENGTH
from exam_grading.models import AnswerGrade, GradeSource, QuestionType
from exam_grading.services.ai_grader import (
    EMPTY_ANSWER_FEEDBACK,
    build_question_context,
    clamp_marks,
    grade_answer_with_ai,
)
from helpers import FakeAIClient, answer_for, long_grade, short_grade

SHORT = QuestionType.SHORT_ANSWER.value
LONG = QuestionType.LONG_ANSWER.value


class TestEmptyAnswers:
    """Tests for the empty-answer short-circuit."""

    def test_empty_answer_scores_zero_without_calling_ai(self, db, make_attempt, ai_client) -> None:
        attempt = make_attempt(answers={SHORT: ""})

        outcome = grade_answer_with_ai(db, answer_for(attempt, SHORT), ai_client)

        assert outcome.success
        assert outcome.marks_awarded == 0
        assert outcome.confidence == 1.0
        assert outcome.needs_review is False
        assert outcome.feedback == EMPTY_ANSWER_FEEDBACK
        assert ai_client.calls == []

    def test_whitespace_answer_is_empty(self, db, make_attempt, ai_client) -> None:
        attempt = make_attempt(answers={LONG: "   \n\t "})

        grade_answer_with_ai(db, answer_for(attempt, LONG), ai_client)
        db.commit()

        grade = db.query(AnswerGrade).one()
        assert grade.graded_by == GradeSource.AI.value
        assert grade.ai_confidence == 1.0
        assert grade.needs_review is False
        assert ai_client.calls == []

    def test_missing_text_is_empty(self, db, make_attempt, ai_client) -> None:
        attempt = make_attempt(answers={SHORT: None})

        outcome = grade_answer_with_ai(db, answer_for(attempt, SHORT), ai_client)

        assert outcome.marks_awarded == 0
        assert ai_client.calls == []


class TestScoring:
    """Tests for persisting AI grades."""

    def test_short_answer_grade_is_saved(self, db, make_attempt, ai_client) -> None:
        attempt = make_attempt(answers={SHORT: "Water diffusing through a membrane"})

        outcome = grade_answer_with_ai(db, answer_for(attempt, SHORT), ai_client)
        db.commit()

        grade = db.query(AnswerGrade).one()
        assert outcome.success
        assert grade.marks_awarded == 2
        assert grade.max_marks == 3
        assert grade.ai_model_used == "gpt-4o-mini"
        assert grade.ai_prompt_tokens == 120
        assert grade.is_reviewed is False

    def test_question_context_is_sent(self, db, make_attempt, ai_client) -> None:
        attempt = make_attempt(answers={SHORT: "Water diffusing"})

        grade_answer_with_ai(db, answer_for(attempt, SHORT), ai_client)

        context, text = ai_client.calls[0]
        assert context.subject_name == "Biology"
        assert context.max_marks == 3
        assert context.model_answer.startswith("Diffusion of water")
        assert text == "Water diffusing"

    def test_long_answer_is_truncated(self, db, make_attempt, ai_client) -> None:
        attempt = make_attempt(answers={LONG: "x" * (MAX_ANSWER_LENGTH + 500)})

        grade_answer_with_ai(db, answer_for(attempt, LONG), ai_client)

        assert len(ai_client.calls[0][1]) == MAX_ANSWER_LENGTH

    def test_long_answer_feedback_includes_breakdown(self, db, make_attempt, ai_client) -> None:
        attempt = make_attempt(answers={LONG: "Enzymes catalyse hydrolysis"})

        outcome = grade_answer_with_ai(db, answer_for(attempt, LONG), ai_client)

        assert outcome.feedback.startswith("Solid discussion")
        assert "Breakdown:" in outcome.feedback
        assert "• Content Knowledge: 4/5 - Accurate" in outcome.feedback
        assert "Strengths: Clear examples" in outcome.feedback
        assert "Areas to improve: Cite sources" in outcome.feedback

    def test_marks_above_maximum_are_clamped(self, db, make_attempt) -> None:
        client = FakeAIClient({SHORT: short_grade(7)})
        attempt = make_attempt(answers={SHORT: "An over-generous answer"})

        outcome = grade_answer_with_ai(db, answer_for(attempt, SHORT), client)

        assert outcome.marks_awarded == 3

    def test_low_confidence_needs_review(self, db, make_attempt) -> None:
        client = FakeAIClient({SHORT: short_grade(1, confidence=0.4)})
        attempt = make_attempt(answers={SHORT: "Something vague"})

        outcome = grade_answer_with_ai(db, answer_for(attempt, SHORT), client)
        db.commit()

        assert outcome.needs_review
        assert db.query(AnswerGrade).one().needs_review

    def test_regrade_resets_review(self, db, make_attempt, ai_client, teacher) -> None:
        """Test that a new AI grade replaces an approved one and needs review again."""
        client = FakeAIClient({LONG: long_grade(2, confidence=0.5)})
        attempt = make_attempt(answers={LONG: "Enzymes help"})
        answer = answer_for(attempt, LONG)
        grade_answer_with_ai(db, answer, ai_client)
        grade = db.query(AnswerGrade).one()
        grade.is_reviewed = True
        grade.reviewed_by_id = teacher.id
        db.commit()

        grade_answer_with_ai(db, answer, client)
        db.commit()

        grade = db.query(AnswerGrade).one()
        assert grade.marks_awarded == 2
        assert grade.is_reviewed is False
        assert grade.reviewed_by_id is None


class TestFailures:
    """Tests for AI call failures."""

    def test_failure_is_reported_not_raised(self, db, make_attempt) -> None:
        client = FakeAIClient({SHORT: AIGradingError("AI grading timed out", retryable=True)})
        attempt = make_attempt(answers={SHORT: "Some answer"})

        outcome = grade_answer_with_ai(db, answer_for(attempt, SHORT), client)

        assert not outcome.success
        assert outcome.error == "AI grading timed out"
        assert outcome.needs_review
        assert db.query(AnswerGrade).count() == 0

    def test_unexpected_client_error_is_contained(self, db, make_attempt) -> None:
        client = FakeAIClient({LONG: RuntimeError("socket closed")})
        attempt = make_attempt(answers={LONG: "Some essay"})

        outcome = grade_answer_with_ai(db, answer_for(attempt, LONG), client)

        assert not outcome.success


class TestHelpers:
    def test_clamp_marks(self) -> None:
        assert clamp_marks(-1, 5) == 0
        assert clamp_marks(2.5, 5) == 2.5
        assert clamp_marks(9, 5) == 5

    def test_build_question_context(self, make_attempt) -> None:
        attempt = make_attempt(answers={LONG: "essay"})

        context = build_question_context(answer_for(attempt, LONG))

        assert context.question_type == QuestionType.LONG_ANSWER
        assert context.difficulty == "HARD"
        assert context.model_answer is None
