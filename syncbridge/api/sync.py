"""Sync observability endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime

from syncbridge.models.base import get_db
from syncbridge.models import SyncedIssue, SyncedMilestone, SyncLog
from syncbridge.models.sync_log import SyncStatus

router = APIRouter(prefix="/api/sync", tags=["sync"])


class SyncLogResponse(BaseModel):
    id: int
    sync_id: Optional[int] = None
    linear_issue_id: Optional[str] = None
    github_issue_number: Optional[int] = None
    action: Optional[str] = None
    status: str
    message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SyncedIssueResponse(BaseModel):
    id: int
    linear_issue_id: str
    linear_issue_number: int
    linear_team_id: str
    github_issue_id: int
    github_issue_number: int
    github_repo_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class SyncedMilestoneResponse(BaseModel):
    id: int
    cycle_id: str
    milestone_id: int
    linear_team_id: str
    github_repo_id: int
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/logs", response_model=List[SyncLogResponse])
def list_sync_logs(
    limit: int = 100,
    status: Optional[SyncStatus] = None,
    linear_issue_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List sync logs, newest first"""
    query = db.query(SyncLog).order_by(SyncLog.created_at.desc(), SyncLog.id.desc())
    if status is not None:
        query = query.filter(SyncLog.status == status)
    if linear_issue_id:
        query = query.filter(SyncLog.linear_issue_id == linear_issue_id)
    return query.limit(limit).all()


@router.get("/synced-issues", response_model=List[SyncedIssueResponse])
def list_synced_issues(
    linear_team_id: Optional[str] = None,
    github_repo_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """List issue links"""
    query = db.query(SyncedIssue).order_by(SyncedIssue.created_at.desc())
    if linear_team_id:
        query = query.filter(SyncedIssue.linear_team_id == linear_team_id)
    if github_repo_id:
        query = query.filter(SyncedIssue.github_repo_id == github_repo_id)
    return query.all()


@router.get("/milestones", response_model=List[SyncedMilestoneResponse])
def list_synced_milestones(
    linear_team_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List cycle to milestone links"""
    query = db.query(SyncedMilestone).order_by(SyncedMilestone.created_at.desc())
    if linear_team_id:
        query = query.filter(SyncedMilestone.linear_team_id == linear_team_id)
    return query.all()
