"""
Prompt templates for AI grading.

Short answers use a weighted four-criterion rubric; long answers use a
five-criterion rubric and must return per-criterion scores that sum to
the awarded marks. Both ask for a single JSON object.
"""

from exam_grading.ai.schemas import QuestionContext
from exam_grading.models.exam import QuestionType

PROMPT_VERSION = "1.0"

SYSTEM_PROMPT = """You are an expert academic examiner. You grade one student answer at a time.

RULES:
- Grade only against the question, the model answer (if any) and the rubric you are given.
- Be fair but strict. Do not over-award vague answers.
- Award 0 marks to an empty or completely irrelevant answer.
- Set confidence between 0.0 and 1.0 to reflect how certain you are of the grade.
- Respond with ONE valid JSON object and nothing else."""

SHORT_ANSWER_RUBRIC = """## Grading Criteria
Grade the answer on these weighted criteria:
1. **Accuracy** (40%): Factual correctness and relevance
2. **Completeness** (30%): Coverage of key concepts
3. **Clarity** (20%): Clear and well-structured expression
4. **Terminology** (10%): Correct use of subject-specific terms"""

LONG_ANSWER_RUBRIC = """## Grading Rubric
Evaluate on these criteria (distribute {max_marks:g} marks proportionally):
1. **Content Knowledge** (30%): Accuracy, depth, and relevance
2. **Analysis & Reasoning** (25%): Critical thinking and logical arguments
3. **Completeness** (20%): Coverage of all required points
4. **Structure & Organization** (15%): Coherent flow and paragraphing
5. **Language & Terminology** (10%): Academic writing and correct terms"""

SHORT_ANSWER_FORMAT = """## Output Format
{
  "marks_awarded": <number between 0 and max marks>,
  "feedback": "<brief constructive feedback for the student>",
  "reasoning": "<internal reasoning for the grade>",
  "confidence": <number between 0.0 and 1.0>,
  "key_matched_concepts": ["<concept>", ...],
  "missing_concepts": ["<concept>", ...]
}"""

LONG_ANSWER_FORMAT = """## Output Format
{
  "marks_awarded": <number between 0 and max marks>,
  "feedback": "<overall constructive feedback for the student>",
  "reasoning": "<internal reasoning for the grade>",
  "confidence": <number between 0.0 and 1.0>,
  "criterion_grades": [
    {"criterion": "<criterion name>", "score": <number>, "max_score": <number>, "comment": "<brief comment>"}
  ],
  "strengths": ["<strength>", ...],
  "improvements": ["<area to improve>", ...]
}"""


def _context_section(context: QuestionContext, kind: str) -> str:
    description = f"\nDescription: {context.question_description}" if context.question_description else ""
    if context.model_answer:
        heading = "## Model Answer" if kind == "short" else "## Model Answer / Expected Points"
        reference = f"{heading}\n{context.model_answer}"
    else:
        reference = ("## Note\nNo model answer provided. "
                     "Grade based on the question requirements and your expertise.")

    return f"""## Context
- Subject: {context.subject_name}
- Difficulty: {context.difficulty}
- Maximum Marks: {context.max_marks:g}

## Question
{context.question_title}{description}

{reference}"""


def build_short_answer_prompt(context: QuestionContext, student_answer: str) -> str:
    return f"""You are grading a short answer question.

{_context_section(context, "short")}

## Student Answer
---BEGIN ANSWER---
{student_answer}
---END ANSWER---

{SHORT_ANSWER_RUBRIC}

## Rules
- Award marks out of {context.max_marks:g}
- Provide constructive feedback that helps the student improve

{SHORT_ANSWER_FORMAT}"""


def build_long_answer_prompt(context: QuestionContext, student_answer: str) -> str:
    return f"""You are grading a long answer / essay question.

{_context_section(context, "long")}

## Student Answer
---BEGIN ANSWER---
{student_answer}
---END ANSWER---

{LONG_ANSWER_RUBRIC.format(max_marks=context.max_marks)}

## Rules
- Award marks out of {context.max_marks:g}
- Provide per-criterion scores that sum exactly to the total marks awarded
- Reward depth and original thinking
- Identify specific strengths and areas for improvement

{LONG_ANSWER_FORMAT}"""


def build_grading_prompt(context: QuestionContext, student_answer: str) -> str:
    """Pick the rubric prompt matching the question type."""
    if context.question_type == QuestionType.SHORT_ANSWER:
        return build_short_answer_prompt(context, student_answer)
    if context.question_type == QuestionType.LONG_ANSWER:
        return build_long_answer_prompt(context, student_answer)
    raise ValueError(f"No AI grading prompt for question type {context.question_type.value}")
