"""Pydantic schemas for approval requests."""
from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel


class RequestCreate(BaseModel):
    title: str
    content: Optional[str] = None
    department: Optional[str] = None  # defaults to the submitter's profile department


class RequestUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    department: Optional[str] = None


class DecisionCreate(BaseModel):
    decision: str  # approved, rejected
    comment: Optional[str] = None


class RequestOut(BaseModel):
    id: UUID
    submitter_id: UUID
    title: str
    content: Optional[str] = None
    department: str
    status: str
    queue_position: Optional[int] = None
    submission_seq: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class QueueStats(BaseModel):
    total_users: int
    total_requests: int
    pending_requests: int
    approved_requests: int
    rejected_requests: int
