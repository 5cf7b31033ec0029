"""Inbound Linear webhook envelope"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActionKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


class InboundEvent(BaseModel):
    """A Linear webhook payload.

    `updated_from` holds the prior value of every field that changed (the
    delta); it is the only signal for what an update touched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: str
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    updated_from: Dict[str, Any] = Field(default_factory=dict, alias="updatedFrom")
    url: Optional[str] = None

    @property
    def actor_id(self) -> Optional[str]:
        return self.data.get("userId") or self.data.get("creatorId")

    @property
    def scope_id(self) -> Optional[str]:
        # Comment payloads carry no team id.
        return self.data.get("teamId")

    @property
    def ticket_id(self) -> Optional[str]:
        return self.data.get("id")

    @property
    def ticket_name(self) -> str:
        team = self.data.get("team")
        if team and self.data.get("number") is not None:
            return f"{team.get('key', '')}-{self.data.get('number')}"
        # Comments only reference their issue.
        issue = self.data.get("issue") or {}
        return issue.get("identifier") or self.data.get("issueId") or self.data.get("id") or ""

    @property
    def issue_id(self) -> Optional[str]:
        """Linear issue the event is about (the parent issue for comments)."""
        return self.data.get("issueId") or self.ticket_id

    @property
    def delta_fields(self) -> set:
        return set(self.updated_from.keys())

    @property
    def label_ids(self) -> list:
        return list(self.data.get("labelIds") or [])

    @property
    def previous_label_ids(self) -> Optional[list]:
        if "labelIds" not in self.updated_from:
            return None
        return list(self.updated_from.get("labelIds") or [])
