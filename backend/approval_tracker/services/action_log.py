"""Append-only log of approval decisions."""
import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from approval_tracker.errors import ConflictError
from approval_tracker.models.action import ApprovalAction, Decision
from approval_tracker.models.change_event import Operation
from approval_tracker.models.request import ApprovalRequest, utcnow
from approval_tracker.services import change_feed
from approval_tracker.services.authorization import Principal, require_decider

logger = logging.getLogger(__name__)


def append(
    db: Session,
    approver: Principal,
    request: ApprovalRequest,
    decision: Decision,
    comment: Optional[str] = None,
) -> ApprovalAction:
    """Record the decision that resolved ``request``.

    The request must already be in the terminal state matching ``decision``,
    the acting principal is recorded as the approver, and a request never gets
    a second action. Does not commit.
    """
    require_decider(approver)
    decision = Decision(decision)
    if request.status is None or request.status.value != decision.value:
        raise ConflictError(
            f"Request {request.id} is {request.status.value}, cannot log a '{decision.value}' decision"
        )
    if request.actions:
        raise ConflictError(f"Request {request.id} already has a recorded decision")

    action = ApprovalAction(
        id=uuid.uuid4(),
        request_id=request.id,
        approver_id=approver.user_id,
        decision=decision,
        comment=comment,
        created_at=utcnow(),
    )
    db.add(action)
    try:
        db.flush()
    except IntegrityError as exc:
        raise ConflictError(f"Request {request.id} already has a recorded decision") from exc

    change_feed.record_action(db, Operation.insert, action)
    logger.info("Logged %s decision %s on request %s by %s", decision.value, action.id, request.id, approver.user_id)
    return action


def history(db: Session, request_id: Optional[uuid.UUID] = None) -> list[ApprovalAction]:
    """List actions newest first, optionally for one request."""
    query = db.query(ApprovalAction)
    if request_id:
        query = query.filter(ApprovalAction.request_id == request_id)
    return query.order_by(ApprovalAction.created_at.desc()).all()
