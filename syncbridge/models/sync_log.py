"""Sync log model"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Enum
from datetime import datetime
import enum
from syncbridge.models.base import Base


class SyncStatus(str, enum.Enum):
    """Sync status enumeration"""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class SyncLog(Base):
    """Log of processed webhook events"""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Sync link that governed the event (none when no link matched)
    sync_id = Column(Integer, ForeignKey("syncs.id"), nullable=True)

    # Issue information
    linear_issue_id = Column(String, nullable=True)
    github_issue_number = Column(Integer, nullable=True)

    # Event details
    action = Column(String, nullable=True)  # e.g. "update:Issue"
    status = Column(Enum(SyncStatus), nullable=False)
    message = Column(Text, nullable=True)

    # Timestamp
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<SyncLog(status={self.status}, action={self.action})>"
