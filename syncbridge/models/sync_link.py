"""Sync link model"""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from syncbridge.models.base import Base


class SyncLink(Base):
    """Correlates one Linear user + team with one GitHub user + repo.

    Created during onboarding; the reconciliation engine only reads it.
    API keys are stored encrypted (AES-256-CBC) next to their IVs.
    """

    __tablename__ = "syncs"
    __table_args__ = (
        UniqueConstraint(
            "linear_user_id",
            "github_user_id",
            "linear_team_id",
            "github_repo_id",
            name="uq_syncs_users_team_repo",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Linear side
    linear_user_id = Column(String, nullable=False, index=True)
    linear_team_id = Column(String, ForeignKey("linear_teams.team_id"), nullable=False)
    linear_api_key = Column(String, nullable=False)
    linear_api_key_iv = Column(String, nullable=False)

    # GitHub side
    github_user_id = Column(BigInteger, nullable=False)
    github_repo_id = Column(BigInteger, ForeignKey("github_repos.repo_id"), nullable=False)
    github_api_key = Column(String, nullable=False)
    github_api_key_iv = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    linear_team = relationship("LinearTeam")
    github_repo = relationship("GitHubRepo")

    def __repr__(self):
        return f"<SyncLink(linear_user={self.linear_user_id}, team={self.linear_team_id})>"
