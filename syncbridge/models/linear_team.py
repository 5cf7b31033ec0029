"""Linear team model"""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from syncbridge.models.base import Base


class LinearTeam(Base):
    """Linear team and the workflow ids the sync needs to know about"""

    __tablename__ = "linear_teams"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(String, unique=True, nullable=False, index=True)
    team_name = Column(String, nullable=False)

    # Label that marks a ticket as public (mirrored to GitHub)
    public_label_id = Column(String, nullable=False)

    # Terminal workflow states
    done_state_id = Column(String, nullable=False)
    canceled_state_id = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<LinearTeam(name='{self.team_name}', team_id='{self.team_id}')>"
