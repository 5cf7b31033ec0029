"""Database models"""

from syncbridge.models.base import Base
from syncbridge.models.github_repo import GitHubRepo
from syncbridge.models.linear_team import LinearTeam
from syncbridge.models.sync_link import SyncLink
from syncbridge.models.sync_log import SyncLog
from syncbridge.models.synced_issue import SyncedIssue
from syncbridge.models.synced_milestone import SyncedMilestone
from syncbridge.models.user_mapping import UserMapping

__all__ = [
    "Base",
    "GitHubRepo",
    "LinearTeam",
    "SyncLink",
    "SyncLog",
    "SyncedIssue",
    "SyncedMilestone",
    "UserMapping",
]
