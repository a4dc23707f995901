"""Pydantic schemas for profiles."""
from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel


class ProfileCreate(BaseModel):
    id: Optional[UUID] = None  # identity-provider user id, generated when absent
    name: Optional[str] = None
    department: Optional[str] = None


class RoleUpdate(BaseModel):
    role: str  # employee, approver, admin


class ProfileOut(BaseModel):
    id: UUID
    name: str
    department: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}
