"""
Notification and audit sinks.

Both are fire-and-forget: they write in their own session, and any failure
is logged and swallowed so it can never fail the grading operation that
triggered it. During a request they run as FastAPI background tasks after
the response is sent; without a request they run inline.
"""

import json
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.audit_log import AuditLog
from exam_grading.models.notification import Notification

logger = get_logger("effects")


def notify(bind, user_id: str, kind: str, title: str, body: str, link: Optional[str] = None) -> None:
    """Store an in-app notification for ``user_id``. Never raises."""
    try:
        with Session(bind=bind) as session:
            session.add(Notification(user_id=user_id, kind=kind, title=title, body=body, link=link))
            session.commit()
    except Exception as e:
        log_with_context(logger, "WARNING", "Notification delivery failed: {}".format(e),
                         context={"user_id": str(user_id)}, extra_data={"kind": kind})


def record_audit(bind, actor_id: str, action: str, entity_type: str, entity_id: str,
                 metadata: Optional[dict] = None) -> None:
    """Append an audit log entry. Never raises."""
    try:
        with Session(bind=bind) as session:
            session.add(AuditLog(
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=json.dumps(metadata or {}, default=str),
            ))
            session.commit()
    except Exception as e:
        log_with_context(logger, "WARNING", "Audit write failed: {}".format(e),
                         context={"actor_id": str(actor_id), "entity_id": str(entity_id)},
                         extra_data={"action": action})


def dispatch(background: Optional[BackgroundTasks], func, *args, **kwargs) -> None:
    """Schedule ``func`` after the response when a request is in flight, else run it now."""
    if background is not None:
        background.add_task(func, *args, **kwargs)
        return
    try:
        func(*args, **kwargs)
    except Exception as e:
        log_with_context(logger, "WARNING", "Side effect {} failed: {}".format(
            getattr(func, "__name__", func), e))
