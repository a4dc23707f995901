"""Request store: the state machine around approval requests.

Responsibilities:
- Authorization guard on every mutation path (submit, decide, edit, purge)
- Status transitions pending -> approved | rejected, terminal states absorbing
- First decision wins: the transition is a compare-and-set on ``status = pending``
- Queue maintenance invoked on every write, inside the write's transaction
- Approval action appended in the same transaction as the decision
- Change feed entries for every row written
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Any

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from approval_tracker.errors import ValidationError, ConflictError, NotFoundError, AuthorizationError
from approval_tracker.models.action import Decision
from approval_tracker.models.change_event import Operation
from approval_tracker.models.profile import Profile
from approval_tracker.models.request import ApprovalRequest, RequestStatus
from approval_tracker.services import action_log, change_feed, queue_maintainer
from approval_tracker.services.authorization import (
    Capability,
    Principal,
    require,
    require_admin,
    require_decider,
)
from approval_tracker.services.queue_maintainer import RowChange
from approval_tracker.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)

# Default for update_details fields the caller left out
UNCHANGED: Any = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _load(db: Session, request_id: uuid.UUID) -> ApprovalRequest:
    request = db.get(ApprovalRequest, request_id)
    if not request:
        raise NotFoundError(f"Approval request {request_id} not found")
    return request


def _next_submission_seq(db: Session) -> int:
    # Only called under the pending-set lock, so two writers never read the same max
    return (db.query(func.max(ApprovalRequest.submission_seq)).scalar() or 0) + 1


def _record_reindex(db: Session, rewritten: list[ApprovalRequest]) -> None:
    for other in rewritten:
        change_feed.record_request(db, Operation.update, other)


def submit(
    db: Session,
    submitter: Optional[Principal],
    title: Optional[str],
    content: Optional[str],
    department: Optional[str],
) -> ApprovalRequest:
    """Create a pending request and give it its place in the queue."""
    if submitter is None or submitter.user_id is None:
        raise ValidationError("A submitter is required")
    require(submitter, Capability.employee, action="submit approval requests")
    title = _clean(title)
    department = _clean(department)
    if not title:
        raise ValidationError("Title must not be empty")
    if not department:
        raise ValidationError("Department is required")

    def work() -> ApprovalRequest:
        queue_maintainer.lock_pending_set(db)
        now = _utcnow()
        request = ApprovalRequest(
            id=uuid.uuid4(),
            submitter_id=submitter.user_id,
            title=title,
            content=content,
            department=department,
            status=RequestStatus.pending,
            submission_seq=_next_submission_seq(db),
            created_at=now,
            updated_at=now,
        )
        rewritten = queue_maintainer.maintain(
            db, request, RowChange(Operation.insert, None, RequestStatus.pending)
        )
        db.add(request)
        db.flush()
        change_feed.record_request(db, Operation.insert, request)
        _record_reindex(db, rewritten)
        return request

    request = run_in_transaction(db, work, "submit")
    db.refresh(request)
    logger.info(
        "Request %s submitted by %s at queue position %s", request.id, request.submitter_id, request.queue_position
    )
    return request


def decide(
    db: Session,
    request_id: uuid.UUID,
    approver: Principal,
    decision: Any,
    comment: Optional[str] = None,
) -> ApprovalRequest:
    """Resolve a pending request and log the decision.

    Raises AuthorizationError for principals without approver/admin capability
    (nothing is read or written), ConflictError when the request is already
    terminal or another decision wins the race.
    """
    require_decider(approver)
    try:
        decision = Decision(decision)
    except ValueError:
        raise ValidationError(f"Decision must be one of {[d.value for d in Decision]}, got {decision!r}")
    new_status = RequestStatus(decision.value)

    def work() -> ApprovalRequest:
        queue_maintainer.lock_pending_set(db)
        request = _load(db, request_id)
        if request.status.is_terminal:
            raise ConflictError(f"Approval request {request_id} is already {request.status.value}")

        result = db.execute(
            update(ApprovalRequest)
            .where(ApprovalRequest.id == request_id, ApprovalRequest.status == RequestStatus.pending)
            .values(status=new_status, queue_position=None, updated_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Approval request {request_id} was decided concurrently")
        db.refresh(request)

        rewritten = queue_maintainer.maintain(
            db, request, RowChange(Operation.update, RequestStatus.pending, new_status)
        )
        db.flush()
        change_feed.record_request(db, Operation.update, request)
        _record_reindex(db, rewritten)
        action_log.append(db, approver, request, decision, comment)
        return request

    request = run_in_transaction(db, work, "decide")
    db.refresh(request)
    logger.info("Request %s %s by %s", request_id, new_status.value, approver.user_id)
    return request


def update_details(
    db: Session,
    request_id: uuid.UUID,
    principal: Principal,
    title: Any = UNCHANGED,
    content: Any = UNCHANGED,
    department: Any = UNCHANGED,
) -> ApprovalRequest:
    """Edit the descriptive fields of a pending request (submitter or admin only).

    Omitted fields keep their value. ``content=None`` clears the content;
    title and department are required and cannot be cleared.
    """
    updates: dict[str, Any] = {}
    if title is not UNCHANGED:
        updates["title"] = _clean(title)
        if not updates["title"]:
            raise ValidationError("Title must not be empty")
    if department is not UNCHANGED:
        updates["department"] = _clean(department)
        if not updates["department"]:
            raise ValidationError("Department must not be empty")
    if content is not UNCHANGED:
        updates["content"] = content

    def work() -> ApprovalRequest:
        request = _load(db, request_id)
        if request.submitter_id != principal.user_id and not principal.has_any(Capability.admin):
            raise AuthorizationError("Only the submitter or an admin may edit this request")
        if request.status.is_terminal:
            raise ConflictError(f"Approval request {request_id} is already {request.status.value}")
        if not updates:
            return request

        for field, value in updates.items():
            setattr(request, field, value)
        request.updated_at = _utcnow()
        # Status is untouched, so the maintainer lets this through without a recompute
        queue_maintainer.maintain(db, request, RowChange(Operation.update, request.status, request.status))
        db.flush()
        change_feed.record_request(db, Operation.update, request)
        return request

    request = run_in_transaction(db, work, "update_details")
    db.refresh(request)
    logger.info("Request %s details updated (%s)", request_id, ", ".join(sorted(updates)) or "no changes")
    return request


def purge(db: Session, request_id: uuid.UUID, principal: Principal) -> None:
    """Hard-delete a request and its action, then close the gap in the queue (admin only)."""
    require_admin(principal, action="purge approval requests")

    def work() -> None:
        queue_maintainer.lock_pending_set(db)
        request = _load(db, request_id)
        change = RowChange(Operation.delete, request.status, None)
        for action in request.actions:
            change_feed.record_action(db, Operation.delete, action)
        change_feed.record_request(db, Operation.delete, request)
        rewritten = queue_maintainer.maintain(db, request, change)
        db.delete(request)
        db.flush()
        _record_reindex(db, rewritten)

    run_in_transaction(db, work, "purge")
    logger.info("Request %s purged by %s", request_id, principal.user_id)


def repair_queue(db: Session, principal: Principal) -> list[ApprovalRequest]:
    """Recompute every pending position from scratch (admin only).

    Returns the rewritten requests; empty when the queue was already consistent.
    """
    require_admin(principal, action="repair the queue")

    def work() -> list[ApprovalRequest]:
        queue_maintainer.lock_pending_set(db)
        rewritten = queue_maintainer.reindex(db)
        db.flush()
        _record_reindex(db, rewritten)
        return rewritten

    rewritten = run_in_transaction(db, work, "repair_queue")
    logger.info("Queue repair by %s rewrote %d positions", principal.user_id, len(rewritten))
    return rewritten


def get_request(db: Session, request_id: uuid.UUID) -> ApprovalRequest:
    return _load(db, request_id)


def list_queue(db: Session) -> list[ApprovalRequest]:
    """Pending requests in queue order."""
    return (
        db.query(ApprovalRequest)
        .filter(ApprovalRequest.status == RequestStatus.pending)
        .order_by(ApprovalRequest.queue_position)
        .all()
    )


def list_requests(
    db: Session,
    status: Optional[str] = None,
    department: Optional[str] = None,
) -> list[ApprovalRequest]:
    """All requests newest first, optionally filtered by status or department."""
    query = db.query(ApprovalRequest)
    if status:
        try:
            query = query.filter(ApprovalRequest.status == RequestStatus(status))
        except ValueError:
            raise ValidationError(f"Unknown status '{status}'")
    if department:
        query = query.filter(ApprovalRequest.department == department)
    return query.order_by(ApprovalRequest.created_at.desc(), ApprovalRequest.submission_seq.desc()).all()


def stats(db: Session) -> dict[str, int]:
    """Request totals by status and the number of profiles."""
    counts = {s.value: 0 for s in RequestStatus}
    rows = db.query(ApprovalRequest.status, func.count(ApprovalRequest.id)).group_by(ApprovalRequest.status).all()
    for status, count in rows:
        counts[status.value] = count
    return {
        "total_users": db.query(func.count(Profile.id)).scalar() or 0,
        "total_requests": sum(counts.values()),
        "pending_requests": counts[RequestStatus.pending.value],
        "approved_requests": counts[RequestStatus.approved.value],
        "rejected_requests": counts[RequestStatus.rejected.value],
    }
