"""Approval action history routes (read-only; actions are written by decisions)."""
from uuid import UUID
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from approval_tracker.database import get_db
from approval_tracker.schemas.action import ActionOut
from approval_tracker.services import action_log

router = APIRouter()


@router.get("/", response_model=list[ActionOut])
def list_actions(request_id: Optional[UUID] = Query(None), db: Session = Depends(get_db)):
    """Decision history newest first, optionally for one request."""
    return action_log.history(db, request_id=request_id)
