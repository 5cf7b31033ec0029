"""GitHub repository model"""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from syncbridge.models.base import Base


class GitHubRepo(Base):
    """GitHub repository a Linear team is mirrored into"""

    __tablename__ = "github_repos"

    id = Column(Integer, primary_key=True, index=True)
    repo_id = Column(BigInteger, unique=True, nullable=False, index=True)
    repo_name = Column(String, nullable=False)  # "owner/name"

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<GitHubRepo(repo_name='{self.repo_name}')>"
