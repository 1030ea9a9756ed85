"""
Pydantic models for the AI grading boundary.

``QuestionContext`` is what the grader knows about the question; the
``*Grade`` models are the structured responses the AI service must return.
A response that does not validate is treated as a failed grading call.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from exam_grading.models.exam import QuestionType

# Criterion scores may drift from the total by rounding only
CRITERION_SUM_TOLERANCE = 0.01


class QuestionContext(BaseModel):
    """Everything about a free-text question the grading prompt needs."""

    model_config = ConfigDict(frozen=True)

    question_type: QuestionType
    question_title: str
    question_description: Optional[str] = None
    model_answer: Optional[str] = None
    subject_name: str
    difficulty: str
    max_marks: float = Field(..., ge=0)


class ShortAnswerGrade(BaseModel):
    """Response schema for SHORT_ANSWER grading."""

    marks_awarded: float = Field(..., ge=0, description="Marks awarded out of maximum marks")
    feedback: str = Field(..., description="Brief constructive feedback for the student")
    reasoning: str = Field("", description="Internal reasoning for the grade (for audit)")
    confidence: float = Field(..., ge=0, le=1, description="Confidence level 0.0-1.0")
    key_matched_concepts: List[str] = Field(default_factory=list)
    missing_concepts: List[str] = Field(default_factory=list)


class CriterionGrade(BaseModel):
    criterion: str
    score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=0)
    comment: str = ""


class LongAnswerGrade(BaseModel):
    """Response schema for LONG_ANSWER grading, with a per-criterion breakdown."""

    marks_awarded: float = Field(..., ge=0, description="Total marks awarded out of maximum marks")
    feedback: str = Field(..., description="Overall constructive feedback for the student")
    reasoning: str = Field("", description="Internal reasoning for the grade (for audit)")
    confidence: float = Field(..., ge=0, le=1, description="Confidence level 0.0-1.0")
    criterion_grades: List[CriterionGrade] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_breakdown_total(self) -> "LongAnswerGrade":
        """Per-criterion scores must add up to the awarded marks."""
        if self.criterion_grades:
            total = sum(c.score for c in self.criterion_grades)
            if abs(total - self.marks_awarded) > CRITERION_SUM_TOLERANCE:
                raise ValueError(
                    f"Criterion scores sum to {total:g} but {self.marks_awarded:g} marks were awarded"
                )
        return self


class AiScore(BaseModel):
    """A validated grade plus the model and token usage that produced it."""

    grade: Union[ShortAnswerGrade, LongAnswerGrade]
    model: str
    prompt_tokens: int = 0
    response_tokens: int = 0
