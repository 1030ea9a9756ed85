"""
Exam and question models - the read-only exam definition consumed by grading.

An Exam carries its total and passing marks and the teacher who owns it.
Reusable Questions are attached to an exam through ExamQuestion rows, which
also fix the marks the question is worth in that exam. Multiple-choice
questions own their options, each flagged correct or incorrect.
"""

import uuid
from enum import Enum
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Float, Boolean, DateTime, ForeignKey, String, Index
from sqlalchemy.orm import relationship
from exam_grading.database import Base


class ExamStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class QuestionType(str, Enum):
    MCQ = "MCQ"
    SHORT_ANSWER = "SHORT_ANSWER"
    LONG_ANSWER = "LONG_ANSWER"


class Difficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class Exam(Base):
    """SQLAlchemy model for the exams table."""
    __tablename__ = "exams"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique exam identifier")
    title = Column(Text, nullable=False,
                   doc="Exam title")
    subject_name = Column(Text, nullable=False, default="General",
                          doc="Subject the exam belongs to (used in AI grading prompts)")
    total_marks = Column(Float, nullable=False, default=0,
                         doc="Maximum obtainable marks for the whole exam")
    passing_marks = Column(Float, nullable=False, default=0,
                           doc="Obtained marks needed to pass")
    duration_minutes = Column(Integer, nullable=False, default=60,
                              doc="Length of the attempt window in minutes")
    max_attempts = Column(Integer, nullable=True,
                          doc="Attempts allowed per student (NULL = unlimited)")
    status = Column(Text, nullable=False, default=ExamStatus.DRAFT.value,
                    doc="Lifecycle: DRAFT | PUBLISHED | ACTIVE | CLOSED")
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=False,
                           doc="Teacher who created (and owns) the exam")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when the exam was created")

    creator = relationship("User")
    exam_questions = relationship("ExamQuestion", back_populates="exam",
                                  order_by="ExamQuestion.position")
    attempts = relationship("Attempt", back_populates="exam")

    def __repr__(self):
        return f"<Exam(id={self.id}, title='{self.title}', total_marks={self.total_marks})>"


class Question(Base):
    """SQLAlchemy model for the reusable question bank."""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique question identifier")
    type = Column(Text, nullable=False, default=QuestionType.MCQ.value,
                  doc="Question type: MCQ | SHORT_ANSWER | LONG_ANSWER")
    title = Column(Text, nullable=False,
                   doc="The question as shown to the student")
    description = Column(Text, nullable=True,
                         doc="Optional extra instructions or context")
    model_answer = Column(Text, nullable=True,
                          doc="Reference answer / expected points for free-text grading")
    difficulty = Column(Text, nullable=False, default=Difficulty.MEDIUM.value,
                        doc="Difficulty: EASY | MEDIUM | HARD")

    options = relationship("McqOption", back_populates="question",
                           cascade="all, delete-orphan")

    @property
    def is_multiple_choice(self):
        return self.type == QuestionType.MCQ.value

    def __repr__(self):
        return f"<Question(id={self.id}, type='{self.type}', title='{self.title[:40]}')>"


class McqOption(Base):
    """One selectable option of a multiple-choice question."""
    __tablename__ = "mcq_options"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False)
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    question = relationship("Question", back_populates="options")

    def __repr__(self):
        return f"<McqOption(id={self.id}, correct={self.is_correct})>"


class ExamQuestion(Base):
    """
    A question placed in a specific exam.

    The marks value here is the maximum a grade for this question can award.
    """
    __tablename__ = "exam_questions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique exam-question identifier")
    exam_id = Column(String(36), ForeignKey("exams.id"), nullable=False)
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False)
    marks = Column(Float, nullable=False, default=1,
                   doc="Marks this question is worth in the exam")
    position = Column(Integer, nullable=False, default=0,
                      doc="Display order within the exam")

    exam = relationship("Exam", back_populates="exam_questions")
    question = relationship("Question")

    __table_args__ = (
        Index("ix_exam_questions_exam_id", "exam_id"),
    )

    def __repr__(self):
        return f"<ExamQuestion(exam={self.exam_id}, question={self.question_id}, marks={self.marks})>"
