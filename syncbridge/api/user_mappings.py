"""User mapping management endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime

from syncbridge.models.base import get_db
from syncbridge.models import UserMapping

router = APIRouter(prefix="/api/user-mappings", tags=["user-mappings"])


class UserMappingCreate(BaseModel):
    linear_user_id: str
    linear_username: Optional[str] = None
    linear_email: Optional[str] = None
    github_user_id: int
    github_username: str
    github_email: Optional[str] = None


class UserMappingResponse(BaseModel):
    id: int
    linear_user_id: str
    linear_username: Optional[str] = None
    linear_email: Optional[str] = None
    github_user_id: int
    github_username: str
    github_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.get("/", response_model=List[UserMappingResponse])
def list_user_mappings(db: Session = Depends(get_db)):
    """List all user mappings"""
    return db.query(UserMapping).all()


@router.post("/", response_model=UserMappingResponse)
def create_user_mapping(mapping: UserMappingCreate, db: Session = Depends(get_db)):
    """Create a new user mapping"""
    existing = db.query(UserMapping).filter(
        UserMapping.linear_user_id == mapping.linear_user_id,
        UserMapping.github_user_id == mapping.github_user_id,
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="User mapping already exists")

    db_mapping = UserMapping(**mapping.model_dump())
    db.add(db_mapping)
    db.commit()
    db.refresh(db_mapping)
    return db_mapping


@router.get("/{mapping_id}", response_model=UserMappingResponse)
def get_user_mapping(mapping_id: int, db: Session = Depends(get_db)):
    """Get a specific user mapping"""
    mapping = db.query(UserMapping).filter(UserMapping.id == mapping_id).first()
    if not mapping:
        raise HTTPException(status_code=404, detail="User mapping not found")
    return mapping


@router.delete("/{mapping_id}")
def delete_user_mapping(mapping_id: int, db: Session = Depends(get_db)):
    """Delete a user mapping"""
    mapping = db.query(UserMapping).filter(UserMapping.id == mapping_id).first()
    if not mapping:
        raise HTTPException(status_code=404, detail="User mapping not found")

    db.delete(mapping)
    db.commit()
    return {"message": "User mapping deleted successfully"}
