"""
Pydantic schemas shared by the grading operations and the HTTP routes.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field

from exam_grading.models.user import Role


class Actor(BaseModel):
    """The authenticated caller of an operation."""
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ActionResult(BaseModel):
    """Uniform result of every grading operation: never an exception."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ActionResult":
        return cls(success=False, error=error, data=data)


class GradeRequest(BaseModel):
    """Body for grading a single answer by hand."""
    marks_awarded: float
    feedback: Optional[str] = Field(None, max_length=5000)


class GradeEntry(BaseModel):
    """One item of a batch grade request."""
    answer_id: str
    marks_awarded: float
    feedback: Optional[str] = Field(None, max_length=5000)


class BatchGradeRequest(BaseModel):
    grades: List[GradeEntry]
    auto_finalize: bool = False


class ApproveOverrides(BaseModel):
    """Optional corrections applied while approving an AI grade."""
    marks_awarded: Optional[float] = None
    feedback: Optional[str] = Field(None, max_length=5000)


class AiGradeStats(BaseModel):
    """Counts reported by an AI grading run over one attempt."""
    total: int = 0
    graded: int = 0
    failed: int = 0
    needs_review: int = 0


class SaveAnswerRequest(BaseModel):
    exam_question_id: str
    answer_text: Optional[str] = Field(None, max_length=10000)
    selected_option_id: Optional[str] = None
