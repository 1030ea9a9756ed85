"""
Answer model - a student's response to one exam question.

Holds the free-text response and/or the selected option. Answer rows are
written while the attempt is in progress and are never deleted by grading.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from exam_grading.database import Base


class Answer(Base):
    """SQLAlchemy model for the answers table (one per attempt and exam question)."""
    __tablename__ = "answers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique answer identifier")
    attempt_id = Column(String(36), ForeignKey("attempts.id"), nullable=False,
                        doc="Attempt this answer belongs to")
    exam_question_id = Column(String(36), ForeignKey("exam_questions.id"), nullable=False,
                              doc="Exam question being answered")
    answer_text = Column(Text, nullable=True,
                         doc="Free-text response (short/long answer questions)")
    selected_option_id = Column(String(36), ForeignKey("mcq_options.id"), nullable=True,
                                doc="Chosen option (multiple-choice questions)")
    answered_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                         doc="When the answer was last saved")

    attempt = relationship("Attempt", back_populates="answers")
    exam_question = relationship("ExamQuestion")
    selected_option = relationship("McqOption")
    grade = relationship("AnswerGrade", back_populates="answer", uselist=False)

    __table_args__ = (
        UniqueConstraint("attempt_id", "exam_question_id", name="uq_answers_attempt_question"),
    )

    @property
    def question(self):
        return self.exam_question.question

    @property
    def is_multiple_choice(self):
        return self.exam_question.question.is_multiple_choice

    def __repr__(self):
        return f"<Answer(id={self.id}, attempt={self.attempt_id}, exam_question={self.exam_question_id})>"
