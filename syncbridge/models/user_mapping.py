"""User mapping model"""
from sqlalchemy import BigInteger, Column, DateTime, Integer, String, UniqueConstraint
from datetime import datetime
from syncbridge.models.base import Base


class UserMapping(Base):
    """The same person's identity on Linear and on GitHub"""

    __tablename__ = "user_mappings"
    __table_args__ = (
        UniqueConstraint("linear_user_id", "github_user_id", name="uq_user_mappings_linear_github"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Linear user
    linear_user_id = Column(String, nullable=False, index=True)
    linear_username = Column(String, nullable=True)
    linear_email = Column(String, nullable=True)

    # GitHub user
    github_user_id = Column(BigInteger, nullable=False)
    github_username = Column(String, nullable=False, index=True)
    github_email = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<UserMapping({self.linear_username} -> {self.github_username})>"
