"""
Shared FastAPI dependencies: caller identity and the AI grading client.

Authentication happens upstream; the gateway forwards the authenticated
user through the X-User-Id and X-User-Role headers.
"""

from functools import lru_cache

from fastapi import Header, HTTPException

from exam_grading.ai import AIGradingClient
from exam_grading.models.user import Role
from exam_grading.schemas import Actor


def get_actor(
    x_user_id: str = Header(..., description="Authenticated user id"),
    x_user_role: str = Header(..., description="ADMIN | TEACHER | STUDENT"),
) -> Actor:
    """Build the calling Actor from the identity headers."""
    try:
        role = Role(x_user_role.upper())
    except ValueError:
        raise HTTPException(status_code=401, detail="Unknown user role")
    return Actor(user_id=x_user_id, role=role)


@lru_cache(maxsize=1)
def get_ai_client() -> AIGradingClient:
    """One AI grading client per process; the underlying HTTP pool is reused."""
    return AIGradingClient()
