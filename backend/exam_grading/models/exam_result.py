"""
ExamResult model - the computed result of a fully graded attempt.

Each graded attempt gets exactly one ExamResult record containing:
- Obtained and total marks
- Percentage, letter grade and pass/fail
- An optional publication timestamp, preserved across recomputation
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Float, Boolean, DateTime, ForeignKey, Text, String
from sqlalchemy.orm import relationship
from exam_grading.database import Base


class ExamResult(Base):
    """
    SQLAlchemy model for the exam_results table.

    One-to-one with Attempt (attempt_id is unique). Written only by the
    result aggregator and removed only by reopen.
    """
    __tablename__ = "exam_results"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique result identifier")
    attempt_id = Column(String(36), ForeignKey("attempts.id"), nullable=False, unique=True,
                        doc="The attempt this result summarises")
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    exam_id = Column(String(36), ForeignKey("exams.id"), nullable=False)
    obtained_marks = Column(Float, nullable=False, default=0,
                            doc="Sum of marks awarded across the attempt's grades")
    total_marks = Column(Float, nullable=False, default=0,
                         doc="Exam total marks at computation time")
    percentage = Column(Float, nullable=False, default=0,
                        doc="obtained_marks / total_marks * 100 (0 when total is 0)")
    grade = Column(Text, nullable=False,
                   doc="Letter grade derived from the grading scale")
    is_passed = Column(Boolean, nullable=False, default=False,
                       doc="obtained_marks >= exam passing marks")
    published_at = Column(DateTime, nullable=True,
                          doc="When the result was released to the student")
    computed_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                         doc="When this result was computed/last recomputed")

    attempt = relationship("Attempt", back_populates="result")

    def __repr__(self):
        return f"<ExamResult(attempt={self.attempt_id}, obtained={self.obtained_marks}/{self.total_marks}, grade='{self.grade}')>"
