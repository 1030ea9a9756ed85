"""
User model - students, teachers and administrators.

Only the identity and role are needed by the grading engine: roles decide
who may grade, and the student id is where result notifications go.
"""

import uuid
from enum import Enum
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String
from sqlalchemy.orm import relationship
from exam_grading.database import Base


class Role(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class User(Base):
    """
    SQLAlchemy model for the users table.

    Teachers own the exams they create; admins may grade any exam.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique user identifier")
    full_name = Column(Text, nullable=False,
                       doc="User's display name")
    email = Column(Text, nullable=True,
                   doc="Contact email")
    role = Column(Text, nullable=False, default=Role.STUDENT.value,
                  doc="Role: ADMIN | TEACHER | STUDENT")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when the user record was created")

    attempts = relationship("Attempt", back_populates="student")

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.full_name}', role='{self.role}')>"
