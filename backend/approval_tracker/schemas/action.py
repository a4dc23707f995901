"""Pydantic schemas for approval actions."""
from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel


class ActionOut(BaseModel):
    id: UUID
    request_id: UUID
    approver_id: UUID
    decision: str
    comment: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
