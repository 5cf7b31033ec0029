"""Persisted cross-system correlation records"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from syncbridge.models import SyncedIssue, SyncedMilestone, SyncLink, SyncLog, UserMapping
from syncbridge.models.sync_log import SyncStatus

logger = logging.getLogger(__name__)


class MappingStore:
    """Keyed lookups and single-row writes over the link tables.

    Inserts that hit a uniqueness constraint are rolled back and reported as
    "already there" rather than raised.
    """

    def __init__(self, db: Session):
        self.db = db

    def _safe_commit(self, row) -> bool:
        """Commit a new row, swallowing duplicate-mapping races."""
        try:
            self.db.add(row)
            self.db.commit()
            return True
        except IntegrityError:
            # Another worker likely created the mapping first.
            self.db.rollback()
            return False

    def rollback(self):
        self.db.rollback()

    # Sync links

    def find_sync_links(self, actor_id: str) -> List[SyncLink]:
        return self.db.query(SyncLink).filter(SyncLink.linear_user_id == actor_id).all()

    def find_sync_link(self, actor_id: str, scope_id: Optional[str] = None) -> Optional[SyncLink]:
        for link in self.find_sync_links(actor_id):
            if scope_id is None or link.linear_team_id == scope_id:
                return link
        return None

    # Issue links

    def find_issue_link(self, ticket_id: str, scope_id: Optional[str] = None) -> Optional[SyncedIssue]:
        """Find the link for a ticket; without a team scope any team matches."""
        query = self.db.query(SyncedIssue).filter(SyncedIssue.linear_issue_id == ticket_id)
        if scope_id is not None:
            query = query.filter(SyncedIssue.linear_team_id == scope_id)
        return query.first()

    def create_issue_link(
        self,
        *,
        linear_issue_id: str,
        linear_issue_number: int,
        linear_team_id: str,
        github_issue_id: int,
        github_issue_number: int,
        github_repo_id: int,
    ) -> Optional[SyncedIssue]:
        """Persist a new issue link. Returns None when one already exists for the ticket."""
        row = SyncedIssue(
            linear_issue_id=linear_issue_id,
            linear_issue_number=int(linear_issue_number),
            linear_team_id=linear_team_id,
            github_issue_id=int(github_issue_id),
            github_issue_number=int(github_issue_number),
            github_repo_id=int(github_repo_id),
        )
        return row if self._safe_commit(row) else None

    def delete_issue_link(self, link: SyncedIssue):
        self.db.delete(link)
        self.db.commit()

    # Milestone links

    def find_milestone_link(
        self, cycle_id: str, scope_id: str, repo_id: Optional[int] = None
    ) -> Optional[SyncedMilestone]:
        query = self.db.query(SyncedMilestone).filter(
            SyncedMilestone.cycle_id == cycle_id,
            SyncedMilestone.linear_team_id == scope_id,
        )
        if repo_id is not None:
            query = query.filter(SyncedMilestone.github_repo_id == repo_id)
        return query.first()

    def create_milestone_link(
        self, *, cycle_id: str, milestone_id: int, linear_team_id: str, github_repo_id: int
    ) -> Optional[SyncedMilestone]:
        row = SyncedMilestone(
            cycle_id=cycle_id,
            milestone_id=int(milestone_id),
            linear_team_id=linear_team_id,
            github_repo_id=int(github_repo_id),
        )
        return row if self._safe_commit(row) else None

    # Identity mappings

    def find_identity_mapping(self, linear_user_id: str) -> Optional[str]:
        """GitHub username mapped to a Linear user id, if any."""
        if not linear_user_id:
            return None
        mapping = (
            self.db.query(UserMapping).filter(UserMapping.linear_user_id == linear_user_id).first()
        )
        return mapping.github_username if mapping else None

    def find_user_mapping(self, linear_user_id: str, github_user_id: int) -> Optional[UserMapping]:
        return (
            self.db.query(UserMapping)
            .filter(
                UserMapping.linear_user_id == linear_user_id,
                UserMapping.github_user_id == github_user_id,
            )
            .first()
        )

    def create_identity_mapping(
        self,
        *,
        linear_user_id: str,
        github_user_id: int,
        github_username: str,
        linear_username: Optional[str] = None,
        linear_email: Optional[str] = None,
        github_email: Optional[str] = None,
    ) -> bool:
        row = UserMapping(
            linear_user_id=linear_user_id,
            linear_username=linear_username,
            linear_email=linear_email,
            github_user_id=int(github_user_id),
            github_username=github_username,
            github_email=github_email,
        )
        return self._safe_commit(row)

    def mention_map(self) -> Dict[str, str]:
        """Linear username -> GitHub username, for rewriting @mentions."""
        return {
            m.linear_username: m.github_username
            for m in self.db.query(UserMapping).all()
            if m.linear_username and m.github_username
        }

    # Event log

    def log_event(
        self,
        status: SyncStatus,
        message: str,
        *,
        action: Optional[str] = None,
        sync_id: Optional[int] = None,
        linear_issue_id: Optional[str] = None,
        github_issue_number: Optional[int] = None,
    ):
        """Record one processed event. Logging must never break event handling."""
        log = SyncLog(
            sync_id=sync_id,
            linear_issue_id=linear_issue_id,
            github_issue_number=github_issue_number,
            action=action,
            status=status,
            message=message,
        )
        try:
            self.db.add(log)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to persist sync log ({status}): {e}")
