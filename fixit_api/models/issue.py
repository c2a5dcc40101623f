"""Issue model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from fixit_api.database import Base
from fixit_api.models.user import _new_id, _utcnow

CATEGORIES = ("Electrical", "Water", "Internet", "Infrastructure")

STATUS_OPEN = "Open"
STATUS_IN_PROGRESS = "In Progress"
STATUS_RESOLVED = "Resolved"
STATUSES = (STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_RESOLVED)


class Issue(Base):
    """Represents a reported facility issue.

    ``image_url`` holds a storage path; signed URLs are derived on read.
    """
    __tablename__ = "issues"
    __table_args__ = (
        Index("idx_issues_owner_created", "created_by", "created_at"),
        Index("idx_issues_status", "status"),
        Index("idx_issues_category", "category"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String, nullable=False)
    status = Column(String, nullable=False, default=STATUS_OPEN)
    image_url = Column(String, nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    admin_remarks = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    creator = relationship("User", lazy="joined")
