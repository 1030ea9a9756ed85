"""
AuditLog model - who did what to which entity, written by the audit sink.
"""

import uuid
import json
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Index
from exam_grading.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(36), nullable=False,
                      doc="User who performed the action")
    action = Column(Text, nullable=False,
                    doc="Action name, e.g. FINALIZE_ATTEMPT")
    entity_type = Column(Text, nullable=False)
    entity_id = Column(String(36), nullable=False)
    details = Column(Text, nullable=True,
                     doc="Action metadata as JSON string")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    @property
    def details_dict(self):
        """Parse details JSON string to dict."""
        try:
            return json.loads(self.details) if self.details else {}
        except (json.JSONDecodeError, TypeError):
            return {}

    def __repr__(self):
        return f"<AuditLog(actor={self.actor_id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
