"""
AI grading boundary: prompts, response schemas and the service client.
"""

from exam_grading.ai.client import AIGradingClient, AIGradingError
from exam_grading.ai.schemas import (
    AiScore,
    CriterionGrade,
    LongAnswerGrade,
    QuestionContext,
    ShortAnswerGrade,
)

__all__ = [
    "AIGradingClient",
    "AIGradingError",
    "AiScore",
    "CriterionGrade",
    "LongAnswerGrade",
    "QuestionContext",
    "ShortAnswerGrade",
]
