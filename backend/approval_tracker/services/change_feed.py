"""Change feed: row-level insert/update/delete events for external subscribers.

Nothing here commits. Events ride in the caller's transaction and become
visible together with the change they describe.
"""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from approval_tracker.models.action import ApprovalAction
from approval_tracker.models.change_event import ChangeEvent, Operation
from approval_tracker.models.request import ApprovalRequest

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def request_snapshot(request: ApprovalRequest) -> dict[str, Any]:
    """Serialize a request to a JSON-safe dict."""
    return {
        "id": str(request.id),
        "submitter_id": str(request.submitter_id),
        "title": request.title,
        "content": request.content,
        "department": request.department,
        "status": request.status.value if request.status else None,
        "submission_seq": request.submission_seq,
        "queue_position": request.queue_position,
        "created_at": _iso(request.created_at),
        "updated_at": _iso(request.updated_at),
    }


def action_snapshot(action: ApprovalAction) -> dict[str, Any]:
    return {
        "id": str(action.id),
        "request_id": str(action.request_id),
        "approver_id": str(action.approver_id),
        "decision": action.decision.value if action.decision else None,
        "comment": action.comment,
        "created_at": _iso(action.created_at),
    }


def record(db: Session, table_name: str, operation: Operation, row_id, payload: dict[str, Any]) -> ChangeEvent:
    event = ChangeEvent(
        table_name=table_name,
        operation=operation,
        row_id=row_id,
        payload=payload,
    )
    db.add(event)
    return event


def record_request(db: Session, operation: Operation, request: ApprovalRequest) -> ChangeEvent:
    return record(db, ApprovalRequest.__tablename__, operation, request.id, request_snapshot(request))


def record_action(db: Session, operation: Operation, action: ApprovalAction) -> ChangeEvent:
    return record(db, ApprovalAction.__tablename__, operation, action.id, action_snapshot(action))


def changes_since(db: Session, after: int = 0, limit: int = 100) -> list[ChangeEvent]:
    """Committed events with ``seq > after``, oldest first."""
    return (
        db.query(ChangeEvent)
        .filter(ChangeEvent.seq > after)
        .order_by(ChangeEvent.seq)
        .limit(limit)
        .all()
    )
