"""Change feed route for polling subscribers."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from approval_tracker.database import get_db
from approval_tracker.schemas.change_event import ChangeEventOut
from approval_tracker.services import change_feed

router = APIRouter()


@router.get("/", response_model=list[ChangeEventOut])
def list_changes(
    after: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Committed row changes with ``seq`` greater than ``after``, oldest first."""
    return change_feed.changes_since(db, after=after, limit=limit)
