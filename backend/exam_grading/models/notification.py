"""
Notification model - in-app messages written by the notification sink.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Boolean, DateTime, ForeignKey, String, Index
from exam_grading.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False,
                     doc="Recipient")
    kind = Column(Text, nullable=False,
                  doc="Notification category, e.g. RESULT_READY")
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    link = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_notifications_user_id", "user_id"),
    )

    def __repr__(self):
        return f"<Notification(user={self.user_id}, kind='{self.kind}')>"
