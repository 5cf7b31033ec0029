"""Synced issue model"""
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from syncbridge.models.base import Base


def utcnow() -> datetime:
    """UTC 'now' as tz-naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SyncedIssue(Base):
    """Mapping of a public Linear ticket to its mirrored GitHub issue.

    Its presence means "do not recreate, only update"; it is deleted when the
    ticket loses its public label.
    """

    __tablename__ = "synced_issues"
    __table_args__ = (
        UniqueConstraint("linear_issue_id", "linear_team_id", name="uq_synced_issues_issue_team"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Linear ticket
    linear_issue_id = Column(String, nullable=False, index=True)
    linear_issue_number = Column(Integer, nullable=False)
    linear_team_id = Column(String, ForeignKey("linear_teams.team_id"), nullable=False)

    # GitHub issue
    github_issue_id = Column(BigInteger, nullable=False)
    github_issue_number = Column(Integer, nullable=False)
    github_repo_id = Column(BigInteger, ForeignKey("github_repos.repo_id"), nullable=False)

    created_at = Column(DateTime, default=utcnow)

    # Relationships
    github_repo = relationship("GitHubRepo")

    def __repr__(self):
        return f"<SyncedIssue(linear={self.linear_issue_id}, github=#{self.github_issue_number})>"
