from exam_grading.models.user import User, Role
from exam_grading.models.exam import Exam, ExamStatus, Question, QuestionType, Difficulty, McqOption, ExamQuestion
from exam_grading.models.attempt import Attempt, AttemptStatus
from exam_grading.models.answer import Answer
from exam_grading.models.answer_grade import AnswerGrade, GradeSource
from exam_grading.models.exam_result import ExamResult
from exam_grading.models.notification import Notification
from exam_grading.models.audit_log import AuditLog

__all__ = [
    "User", "Role",
    "Exam", "ExamStatus", "Question", "QuestionType", "Difficulty", "McqOption", "ExamQuestion",
    "Attempt", "AttemptStatus",
    "Answer",
    "AnswerGrade", "GradeSource",
    "ExamResult",
    "Notification",
    "AuditLog",
]
