"""
Test helpers shared across test modules: lookups and the fake AI client.
"""

from typing import Any, Optional

from exam_grading.ai.client import AIGradingError
from exam_grading.ai.schemas import (
    AiScore,
    CriterionGrade,
    LongAnswerGrade,
    QuestionContext,
    ShortAnswerGrade,
)
from exam_grading.models import Answer, Attempt, ExamQuestion, McqOption


def option(exam_question: ExamQuestion, correct: bool) -> McqOption:
    return next(o for o in exam_question.question.options if o.is_correct == correct)


def answer_for(attempt: Attempt, question_type: str) -> Answer:
    return next(a for a in attempt.answers if a.exam_question.question.type == question_type)


def short_grade(marks: float, confidence: float = 0.9, feedback: str = "Good answer") -> AiScore:
    return AiScore(
        grade=ShortAnswerGrade(marks_awarded=marks, feedback=feedback, confidence=confidence),
        model="gpt-4o-mini",
        prompt_tokens=120,
        response_tokens=40,
    )


def long_grade(marks: float, confidence: float = 0.9) -> AiScore:
    return AiScore(
        grade=LongAnswerGrade(
            marks_awarded=marks,
            feedback="Solid discussion",
            confidence=confidence,
            criterion_grades=[
                CriterionGrade(criterion="Content Knowledge", score=marks, max_score=5, comment="Accurate"),
            ],
            strengths=["Clear examples"],
            improvements=["Cite sources"],
        ),
        model="gpt-4o-mini",
        prompt_tokens=300,
        response_tokens=90,
    )


class FakeAIClient:
    """
    Stand-in for AIGradingClient.

    Responds per question type from ``responses``; a response that is an
    exception instance is raised instead. Every call is recorded.
    """

    def __init__(self, responses: Optional[dict] = None):
        self.responses = responses or {}
        self.calls: list = []

    def score(self, context: QuestionContext, student_answer: str) -> Any:
        self.calls.append((context, student_answer))
        response = self.responses.get(context.question_type.value)
        if response is None:
            raise AIGradingError("No scripted response")
        if isinstance(response, BaseException):
            raise response
        return response
