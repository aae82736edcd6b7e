"""
Activity Log Database Model.

Records domain events (loan created, installment paid, ...) for the owner's
activity feed.
"""

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from bizledger.app.db.session import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True)

    # Who performed the action
    owner_id = Column(String(36), index=True, nullable=True)

    # What was done, to what
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(36), nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, action='{self.action}', owner={self.owner_id})>"
