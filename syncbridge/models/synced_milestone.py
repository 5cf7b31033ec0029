"""Synced milestone model"""
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from datetime import datetime
from syncbridge.models.base import Base


class SyncedMilestone(Base):
    """Mapping of a Linear cycle to the GitHub milestone created for it"""

    __tablename__ = "milestones"
    __table_args__ = (
        UniqueConstraint(
            "cycle_id", "github_repo_id", "linear_team_id", name="uq_milestones_cycle_repo_team"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    cycle_id = Column(String, nullable=False, index=True)
    milestone_id = Column(Integer, nullable=False)  # GitHub milestone number

    linear_team_id = Column(String, ForeignKey("linear_teams.team_id"), nullable=False)
    github_repo_id = Column(BigInteger, ForeignKey("github_repos.repo_id"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<SyncedMilestone(cycle={self.cycle_id}, milestone={self.milestone_id})>"
