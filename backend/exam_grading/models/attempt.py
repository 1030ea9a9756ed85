"""
Attempt model - a student's single try at an exam.

This is the central entity of the grading engine. Each attempt owns:
- The student's answers (one row per exam question answered)
- A status tracking it through the grading pipeline
- Opaque proctoring flags recorded while the exam was taken
- At most one Result, created when the attempt is finalized
"""

import uuid
import json
from enum import Enum
from sqlalchemy import Column, Text, Integer, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from exam_grading.database import Base


class AttemptStatus(str, Enum):
    """
    Grading lifecycle of an attempt.

    NOT_STARTED -> IN_PROGRESS -> SUBMITTED -> GRADING -> GRADED,
    with GRADED -> GRADING only through an explicit reopen.
    """
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    GRADING = "GRADING"
    GRADED = "GRADED"


class Attempt(Base):
    """
    SQLAlchemy model for the attempts table.

    The status column is only ever written through
    ``exam_grading.services.state_machine.set_status``.
    """
    __tablename__ = "attempts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique attempt identifier")
    exam_id = Column(String(36), ForeignKey("exams.id"), nullable=False,
                     doc="Reference to the exam being attempted")
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False,
                        doc="Reference to the student who made this attempt")
    attempt_number = Column(Integer, nullable=False, default=1,
                            doc="1-based attempt counter per student and exam")
    status = Column(Text, nullable=False, default=AttemptStatus.NOT_STARTED.value,
                    doc="NOT_STARTED | IN_PROGRESS | SUBMITTED | GRADING | GRADED")
    started_at = Column(DateTime, nullable=True,
                        doc="When the student started the exam")
    submitted_at = Column(DateTime, nullable=True,
                          doc="When the student submitted")
    proctoring_flags = Column(Text, nullable=True,
                              doc="Proctoring signals as JSON, recorded elsewhere and only read here")

    exam = relationship("Exam", back_populates="attempts")
    student = relationship("User", back_populates="attempts")
    answers = relationship("Answer", back_populates="attempt")
    result = relationship("ExamResult", back_populates="attempt", uselist=False)

    __table_args__ = (
        Index("ix_attempts_exam_id", "exam_id"),
        Index("ix_attempts_student_id", "student_id"),
        Index("ix_attempts_status", "status"),
    )

    @property
    def proctoring_flags_dict(self):
        """Parse proctoring_flags JSON string to dict."""
        if isinstance(self.proctoring_flags, dict):
            return self.proctoring_flags
        try:
            return json.loads(self.proctoring_flags) if self.proctoring_flags else {}
        except (json.JSONDecodeError, TypeError):
            return {}

    def __repr__(self):
        return f"<Attempt(id={self.id}, student={self.student_id}, exam={self.exam_id}, status='{self.status}')>"
