"""
Grading configuration read from the environment.

Values are loaded once at import time; a local ``.env`` file is honoured
for development.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ── AI grading service ───────────────────────────────────────
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None
AI_GRADING_MODEL = os.getenv("AI_GRADING_MODEL", "gpt-4o-mini")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "1024"))

# Grades below this confidence are surfaced for human review
AI_CONFIDENCE_THRESHOLD = float(os.getenv("AI_CONFIDENCE_THRESHOLD", "0.7"))

# Answers longer than this are truncated before being sent for grading
MAX_ANSWER_LENGTH = int(os.getenv("MAX_ANSWER_LENGTH", "4000"))

# ── Result computation ───────────────────────────────────────
RESULT_SERIALIZATION_RETRIES = int(os.getenv("RESULT_SERIALIZATION_RETRIES", "3"))

# ── Server ───────────────────────────────────────────────────
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
