"""
Grade persistence helpers shared by every grader.

``upsert_grade`` is the one way a grade row is created or replaced: it is
keyed by answer id, so re-grading an answer never produces a second row.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exam_grading.errors import InvalidMarksError
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.answer import Answer
from exam_grading.models.answer_grade import AnswerGrade

logger = get_logger("db")


def validate_marks(marks: float, max_marks: float) -> None:
    """Raise InvalidMarksError unless 0 <= marks <= max_marks."""
    if marks is None or marks < 0:
        raise InvalidMarksError("Marks cannot be negative")
    if marks > max_marks:
        raise InvalidMarksError("Marks cannot exceed the maximum of {:g}".format(max_marks))


def find_grade(db: Session, answer_id: str):
    return db.query(AnswerGrade).filter(AnswerGrade.answer_id == answer_id).first()


def grades_by_answer(db: Session, attempt_id: str) -> dict:
    """Map answer id -> AnswerGrade for every graded answer of an attempt."""
    rows = db.query(AnswerGrade).join(Answer, AnswerGrade.answer_id == Answer.id).filter(
        Answer.attempt_id == attempt_id
    ).all()
    return {g.answer_id: g for g in rows}


def upsert_grade(db: Session, answer_id: str, **fields) -> AnswerGrade:
    """
    Create the grade for ``answer_id`` or overwrite the existing one.

    The insert runs in a savepoint; if a concurrent writer created the row
    first, the unique constraint fires and the existing row is updated
    instead. The caller owns the surrounding transaction.
    """
    grade = find_grade(db, answer_id)
    if grade is None:
        try:
            with db.begin_nested():
                grade = AnswerGrade(answer_id=answer_id, **fields)
                db.add(grade)
            return grade
        except IntegrityError:
            log_with_context(logger, "WARNING",
                "Concurrent grade insert for answer {}, updating instead".format(answer_id),
                context={"answer_id": answer_id})
            grade = find_grade(db, answer_id)

    for name, value in fields.items():
        setattr(grade, name, value)
    db.flush()
    return grade


def count_ungraded(db: Session, attempt_id: str) -> int:
    """Number of answers of the attempt that have no grade yet."""
    return db.query(Answer).outerjoin(AnswerGrade, AnswerGrade.answer_id == Answer.id).filter(
        Answer.attempt_id == attempt_id,
        AnswerGrade.id.is_(None),
    ).count()


def is_fully_graded(db: Session, attempt_id: str) -> bool:
    """True when the attempt has answers and none of them is missing a grade."""
    db.flush()
    has_answers = db.query(Answer).filter(Answer.attempt_id == attempt_id).count() > 0
    return has_answers and count_ungraded(db, attempt_id) == 0
