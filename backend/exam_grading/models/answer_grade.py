"""
AnswerGrade model - the grade attached to a single answer.

Each answer gets at most one AnswerGrade (answer_id is unique). All three
graders write the same shape and differ only in ``graded_by``:
- SYSTEM: deterministic multiple-choice grading
- AI: free-text grading by the AI service (carries confidence and usage)
- TEACHER: a human grade or override

``is_reviewed`` is only ever set by an explicit human approval.
"""

import uuid
from enum import Enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, Text, String
from sqlalchemy.orm import relationship
from exam_grading.config import AI_CONFIDENCE_THRESHOLD
from exam_grading.database import Base


class GradeSource(str, Enum):
    SYSTEM = "SYSTEM"
    AI = "AI"
    TEACHER = "TEACHER"


class AnswerGrade(Base):
    """
    SQLAlchemy model for the answer_grades table.

    Invariant: 0 <= marks_awarded <= max_marks.
    """
    __tablename__ = "answer_grades"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique grade identifier")
    answer_id = Column(String(36), ForeignKey("answers.id"), nullable=False, unique=True,
                       doc="Graded answer (one grade per answer)")
    graded_by = Column(Text, nullable=False,
                       doc="Grading source: SYSTEM | AI | TEACHER")
    grader_id = Column(String(36), ForeignKey("users.id"), nullable=True,
                       doc="Teacher who authored the marks (TEACHER grades only)")
    marks_awarded = Column(Float, nullable=False, default=0,
                           doc="Marks awarded, within [0, max_marks]")
    max_marks = Column(Float, nullable=False,
                       doc="Maximum marks for this question instance")
    feedback = Column(Text, nullable=True,
                      doc="Feedback shown to the student")

    ai_confidence = Column(Float, nullable=True,
                           doc="AI confidence in [0, 1] (AI grades only)")
    ai_model_used = Column(Text, nullable=True,
                           doc="Model identifier that produced the grade")
    ai_prompt_tokens = Column(Integer, nullable=True)
    ai_response_tokens = Column(Integer, nullable=True)

    is_reviewed = Column(Boolean, nullable=False, default=False,
                         doc="Set only when a human approves the grade")
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    answer = relationship("Answer", back_populates="grade")

    @property
    def needs_review(self):
        """Low-confidence AI grade nobody has approved yet. Advisory only."""
        return (
            self.graded_by == GradeSource.AI.value
            and not self.is_reviewed
            and self.ai_confidence is not None
            and self.ai_confidence < AI_CONFIDENCE_THRESHOLD
        )

    def __repr__(self):
        return f"<AnswerGrade(answer={self.answer_id}, by={self.graded_by}, marks={self.marks_awarded}/{self.max_marks})>"
