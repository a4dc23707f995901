"""Pydantic schemas for the change feed."""
from datetime import datetime
from uuid import UUID
from typing import Any
from pydantic import BaseModel


class ChangeEventOut(BaseModel):
    seq: int
    table_name: str
    operation: str
    row_id: UUID
    payload: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}
