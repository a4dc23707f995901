"""Approval request API routes; every write delegates to request_store."""
import logging
from uuid import UUID
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from approval_tracker.database import get_db
from approval_tracker.dependencies import get_principal
from approval_tracker.schemas.request import (
    RequestCreate,
    RequestUpdate,
    DecisionCreate,
    RequestOut,
    QueueStats,
)
from approval_tracker.services import profile_service, request_store
from approval_tracker.services.authorization import Principal

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def submit_request(
    payload: RequestCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Submit a request; it joins the back of the pending queue."""
    department = payload.department
    if department is None:
        department = profile_service.get_profile(db, principal.user_id).department
    return request_store.submit(
        db=db,
        submitter=principal,
        title=payload.title,
        content=payload.content,
        department=department,
    )


@router.get("/", response_model=list[RequestOut])
def list_requests(
    status_filter: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """List all requests newest first, optionally filtered by status or department."""
    return request_store.list_requests(db, status=status_filter, department=department)


@router.get("/queue", response_model=list[RequestOut])
def get_queue(db: Session = Depends(get_db)):
    """Pending requests in queue order."""
    return request_store.list_queue(db)


@router.post("/queue/reindex", response_model=list[RequestOut])
def repair_queue(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Recompute all pending positions (admin). Returns the rows that moved."""
    return request_store.repair_queue(db, principal)


@router.get("/stats", response_model=QueueStats)
def get_stats(db: Session = Depends(get_db)):
    return request_store.stats(db)


@router.get("/{request_id}", response_model=RequestOut)
def get_request(request_id: UUID, db: Session = Depends(get_db)):
    return request_store.get_request(db, request_id)


@router.patch("/{request_id}", response_model=RequestOut)
def update_request(
    request_id: UUID,
    payload: RequestUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Edit title, content or department of a pending request."""
    return request_store.update_details(
        db, request_id, principal, **payload.model_dump(exclude_unset=True)
    )


@router.post("/{request_id}/decision", response_model=RequestOut)
def decide_request(
    request_id: UUID,
    payload: DecisionCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Approve or reject a pending request (approver or admin)."""
    return request_store.decide(
        db=db,
        request_id=request_id,
        approver=principal,
        decision=payload.decision,
        comment=payload.comment,
    )


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def purge_request(
    request_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Delete a request and its decision record (admin)."""
    request_store.purge(db, request_id, principal)
