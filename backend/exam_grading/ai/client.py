"""
AI Grading Client.

Wraps the OpenAI SDK to score a single free-text answer and return a
validated, structured grade. Every call is bounded by a timeout and is not
retried: a failed or timed-out call surfaces as ``AIGradingError`` and the
teacher decides whether to run grading again.
"""

import json
import re

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, OpenAIError
from pydantic import ValidationError

from exam_grading.ai.prompts import SYSTEM_PROMPT, build_grading_prompt
from exam_grading.ai.schemas import AiScore, LongAnswerGrade, QuestionContext, ShortAnswerGrade
from exam_grading.config import (
    AI_GRADING_MODEL,
    AI_MAX_TOKENS,
    AI_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
)
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.exam import QuestionType

logger = get_logger("ai")


class AIGradingError(Exception):
    """Raised when the AI service fails, times out, or answers malformed."""

    def __init__(self, message: str, cause: Exception | None = None, retryable: bool = False):
        self.cause = cause
        self.retryable = retryable
        super().__init__(message)


class AIGradingClient:
    """
    Client for the AI grading service.

    Uses the OpenAI chat completions API in JSON mode; any OpenAI-compatible
    endpoint can be targeted through ``base_url``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.model = model or AI_GRADING_MODEL
        self._client = OpenAI(
            api_key=api_key or OPENAI_API_KEY,
            base_url=base_url or OPENAI_BASE_URL,
            timeout=timeout or AI_TIMEOUT_SECONDS,
            max_retries=0,
        )

    def score(self, context: QuestionContext, student_answer: str) -> AiScore:
        """
        Grade one answer.

        Args:
            context: The question being answered.
            student_answer: The (already truncated) answer text.

        Returns:
            The validated grade with model and token usage.

        Raises:
            AIGradingError: On timeout, service error, or a response that does
                not match the expected schema.
        """
        schema = LongAnswerGrade if context.question_type == QuestionType.LONG_ANSWER else ShortAnswerGrade
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_grading_prompt(context, student_answer)},
        ]

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=0.0,
                max_tokens=AI_MAX_TOKENS,
                response_format={"type": "json_object"},
            )
        except APITimeoutError as e:
            raise AIGradingError("AI grading timed out", cause=e, retryable=True) from e
        except APIConnectionError as e:
            raise AIGradingError("Could not reach the AI grading service", cause=e, retryable=True) from e
        except APIStatusError as e:
            retryable = e.status_code == 429 or e.status_code >= 500
            raise AIGradingError(f"AI grading service error: {e.message}", cause=e, retryable=retryable) from e
        except OpenAIError as e:
            raise AIGradingError(f"AI grading failed: {e}", cause=e) from e

        if not response.choices or not response.choices[0].message.content:
            raise AIGradingError("Empty response from AI grading service", retryable=True)

        content = response.choices[0].message.content
        try:
            grade = schema.model_validate_json(extract_json(content))
        except ValidationError as e:
            log_with_context(logger, "WARNING", "Malformed AI grading response",
                             extra_data={"errors": e.error_count(), "response": content[:500]})
            raise AIGradingError(f"Malformed grading response: {e.errors()[0]['msg']}", cause=e) from e

        usage = response.usage
        return AiScore(
            grade=grade,
            model=response.model or self.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            response_tokens=usage.completion_tokens if usage else 0,
        )


def extract_json(response: str) -> str:
    """
    Pull the JSON object out of a model response.

    Handles a bare object, or one wrapped in a markdown code block.
    """
    match = re.search(r"```(?:json)?\s*([\s\S]*?)```", response)
    if match:
        return match.group(1).strip()

    start = response.find("{")
    end = response.rfind("}")
    if start == -1 or end < start:
        raise AIGradingError("No JSON object found in AI grading response")
    candidate = response[start:end + 1]
    try:
        json.loads(candidate)
    except json.JSONDecodeError as e:
        raise AIGradingError(f"Invalid JSON in AI grading response: {e}", cause=e) from e
    return candidate
