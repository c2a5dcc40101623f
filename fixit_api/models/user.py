"""User model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from fixit_api.database import Base

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Represents a registered student or administrator."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # bcrypt hash
    role = Column(String, nullable=False, default=ROLE_STUDENT)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
