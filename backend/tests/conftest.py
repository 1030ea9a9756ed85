"""
Pytest configuration and fixtures.

Every test gets its own SQLite database file, an exam with one question of
each type owned by a teacher, and a scripted fake AI grading client.
"""

import os
from pathlib import Path
from typing import Callable, Generator, Optional

# The application engine must never touch a real database during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

import exam_grading.models  # noqa: F401
from exam_grading.ai.client import AIGradingError
from exam_grading.database import Base
from exam_grading.models import (
    Answer,
    Attempt,
    AttemptStatus,
    Exam,
    ExamQuestion,
    ExamStatus,
    McqOption,
    Question,
    QuestionType,
    Role,
    User,
)
from exam_grading.schemas import Actor
from helpers import FakeAIClient, long_grade, option, short_grade


# ==============================================================================
# Database Fixtures
# ==============================================================================


@pytest.fixture
def engine(tmp_path: Path):
    """A fresh SQLite database file with all tables created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'grading.db'}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    """Session used by the test and the code under test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fresh(session_factory) -> Callable[[], Session]:
    """Open a second session to check what was actually committed."""
    sessions = []

    def _open() -> Session:
        session = session_factory()
        sessions.append(session)
        return session

    yield _open
    for session in sessions:
        session.close()


# ==============================================================================
# Users and Actors
# ==============================================================================


def _user(db: Session, name: str, role: Role) -> User:
    user = User(full_name=name, email=f"{name.lower().replace(' ', '.')}@school.test", role=role.value)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def teacher(db: Session) -> User:
    return _user(db, "Grace Hopper", Role.TEACHER)


@pytest.fixture
def other_teacher(db: Session) -> User:
    return _user(db, "Alan Turing", Role.TEACHER)


@pytest.fixture
def admin(db: Session) -> User:
    return _user(db, "Ada Admin", Role.ADMIN)


@pytest.fixture
def student(db: Session) -> User:
    return _user(db, "Sam Student", Role.STUDENT)


@pytest.fixture
def teacher_actor(teacher: User) -> Actor:
    return Actor(user_id=teacher.id, role=Role.TEACHER)


@pytest.fixture
def other_teacher_actor(other_teacher: User) -> Actor:
    return Actor(user_id=other_teacher.id, role=Role.TEACHER)


@pytest.fixture
def admin_actor(admin: User) -> Actor:
    return Actor(user_id=admin.id, role=Role.ADMIN)


@pytest.fixture
def student_actor(student: User) -> Actor:
    return Actor(user_id=student.id, role=Role.STUDENT)


# ==============================================================================
# Exam Fixtures
# ==============================================================================


@pytest.fixture
def exam(db: Session, teacher: User) -> Exam:
    """
    A 10-mark exam (pass at 5) with three questions:
    a 2-mark multiple-choice, a 3-mark short answer and a 5-mark essay.
    """
    exam = Exam(
        title="Intro to Biology",
        subject_name="Biology",
        total_marks=10,
        passing_marks=5,
        status=ExamStatus.PUBLISHED.value,
        created_by_id=teacher.id,
    )
    db.add(exam)

    mcq = Question(type=QuestionType.MCQ.value, title="Which organelle produces ATP?")
    mcq.options = [
        McqOption(text="Mitochondria", is_correct=True),
        McqOption(text="Ribosome", is_correct=False),
        McqOption(text="Nucleus", is_correct=False),
    ]
    short = Question(
        type=QuestionType.SHORT_ANSWER.value,
        title="Define osmosis.",
        model_answer="Diffusion of water across a semi-permeable membrane.",
    )
    essay = Question(
        type=QuestionType.LONG_ANSWER.value,
        title="Discuss the role of enzymes in digestion.",
        difficulty="HARD",
    )
    db.add_all([mcq, short, essay])
    db.flush()

    db.add_all([
        ExamQuestion(exam_id=exam.id, question_id=mcq.id, marks=2, position=1),
        ExamQuestion(exam_id=exam.id, question_id=short.id, marks=3, position=2),
        ExamQuestion(exam_id=exam.id, question_id=essay.id, marks=5, position=3),
    ])
    db.commit()
    return exam


@pytest.fixture
def questions(exam: Exam) -> dict:
    """The exam's ExamQuestion rows keyed by question type."""
    return {eq.question.type: eq for eq in exam.exam_questions}


@pytest.fixture
def make_attempt(db: Session, exam: Exam, student: User, questions: dict):
    """
    Create an attempt with answers.

    ``answers`` maps question type to the answer: an option id (or None) for
    MCQ, text for the free-text types. Types left out get no answer row.
    """

    def _make(status: AttemptStatus = AttemptStatus.SUBMITTED,
              answers: Optional[dict] = None, student_id: Optional[str] = None) -> Attempt:
        attempt = Attempt(
            exam_id=exam.id,
            student_id=student_id or student.id,
            status=status.value,
        )
        db.add(attempt)
        db.flush()

        for question_type, value in (answers or {}).items():
            exam_question = questions[question_type]
            answer = Answer(attempt_id=attempt.id, exam_question_id=exam_question.id)
            if question_type == QuestionType.MCQ.value:
                answer.selected_option_id = value
            else:
                answer.answer_text = value
            db.add(answer)

        db.commit()
        return attempt

    return _make


@pytest.fixture
def full_answers(questions: dict) -> dict:
    """A correct MCQ choice plus non-empty free-text answers."""
    return {
        QuestionType.MCQ.value: option(questions[QuestionType.MCQ.value], correct=True).id,
        QuestionType.SHORT_ANSWER.value: "Water moving through a membrane from low to high solute.",
        QuestionType.LONG_ANSWER.value: "Enzymes such as amylase and pepsin break down food molecules...",
    }


@pytest.fixture
def submitted_attempt(make_attempt, full_answers: dict) -> Attempt:
    return make_attempt(AttemptStatus.SUBMITTED, full_answers)


@pytest.fixture
def mcq_attempt(make_attempt, full_answers: dict) -> Attempt:
    """A submitted attempt whose only answer is the correct multiple-choice option."""
    mcq = QuestionType.MCQ.value
    return make_attempt(AttemptStatus.SUBMITTED, {mcq: full_answers[mcq]})


# ==============================================================================
# AI Client Fixtures
# ==============================================================================


@pytest.fixture
def ai_client() -> FakeAIClient:
    """Grades the short answer 2/3 and the essay 4/5, both confidently."""
    return FakeAIClient({
        QuestionType.SHORT_ANSWER.value: short_grade(2),
        QuestionType.LONG_ANSWER.value: long_grade(4),
    })


@pytest.fixture
def failing_ai_client() -> FakeAIClient:
    error = AIGradingError("AI grading timed out", retryable=True)
    return FakeAIClient({
        QuestionType.SHORT_ANSWER.value: error,
        QuestionType.LONG_ANSWER.value: error,
    })
