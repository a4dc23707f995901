"""Queue maintainer: keeps ``queue_position`` dense over the pending set.

Every write the request store makes to a request is described to
:func:`maintain` as a :class:`RowChange`. The maintainer acts only when the
change adds a row to, or removes a row from, the pending set; edits to
descriptive fields pass straight through. When it does act, it

1. ranks the *other* pending rows by ``(created_at, submission_seq)``, reading
   them from the store without the row being written,
2. merges the written row's key in logically when that row is (or becomes)
   pending, which gives it ``1 + count(pending rows ordered before it)``,
3. writes back only the rows whose rank differs from their stored position,
4. clears the position of a row that is leaving the pending set.

Running it against an already consistent pending set writes nothing, so the
writes it makes never feed back into another recompute.

The maintainer takes no principal. It runs with the store's own privilege
inside the caller's transaction; authorization has already happened at the
submit/decide boundary. It never commits: a failure here propagates and rolls
back the triggering write together with any position already rewritten.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from approval_tracker.models.change_event import Operation
from approval_tracker.models.request import ApprovalRequest, RequestStatus

logger = logging.getLogger(__name__)

# Arbitrary but fixed key for the transaction-scoped PostgreSQL advisory lock
PENDING_SET_LOCK_KEY = 7_301_221


@dataclass(frozen=True)
class RowChange:
    """What a write did to a request's status."""

    operation: Operation
    old_status: Optional[RequestStatus]
    new_status: Optional[RequestStatus]

    @property
    def affects_pending_set(self) -> bool:
        pending = RequestStatus.pending
        if self.operation is Operation.insert:
            return self.new_status == pending
        if self.operation is Operation.delete:
            return self.old_status == pending
        return self.old_status != self.new_status and pending in (self.old_status, self.new_status)

    @property
    def leaves_row_pending(self) -> bool:
        return self.operation is not Operation.delete and self.new_status == RequestStatus.pending


def lock_pending_set(db: Session) -> None:
    """Serialize writers of the pending set for the rest of the transaction.

    PostgreSQL gets an advisory transaction lock. SQLite needs none: its single
    write lock plus snapshot reads make a second writer that read a stale
    pending set fail, and the transaction runner retries it.
    """
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": PENDING_SET_LOCK_KEY})


def sort_key(created_at: datetime, submission_seq: int) -> tuple:
    # SQLite hands back naive UTC datetimes, freshly built rows carry tzinfo
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
    return created_at, submission_seq


def _pending_rows(db: Session, exclude_id=None) -> list[ApprovalRequest]:
    query = db.query(ApprovalRequest).filter(ApprovalRequest.status == RequestStatus.pending)
    if exclude_id is not None:
        query = query.filter(ApprovalRequest.id != exclude_id)
    rows = query.populate_existing().all()
    rows.sort(key=lambda r: sort_key(r.created_at, r.submission_seq))
    return rows


def _write_position(row: ApprovalRequest, position: Optional[int]) -> bool:
    if row.queue_position == position:
        return False
    row.queue_position = position
    return True


def maintain(db: Session, row: ApprovalRequest, change: RowChange) -> list[ApprovalRequest]:
    """Apply ``change`` to the queue ordering.

    Sets ``row.queue_position`` and returns the other requests whose position
    was rewritten. Returns an empty list without touching the store when the
    change does not affect the pending set.
    """
    if not change.affects_pending_set:
        return []

    others = _pending_rows(db, exclude_id=row.id)
    own_key = sort_key(row.created_at, row.submission_seq) if change.leaves_row_pending else None

    rewritten = []
    ahead_of_row = 0
    for index, other in enumerate(others):
        rank = index + 1
        if own_key is not None:
            if sort_key(other.created_at, other.submission_seq) < own_key:
                ahead_of_row += 1
            else:
                rank += 1
        if _write_position(other, rank):
            rewritten.append(other)

    if change.operation is not Operation.delete:
        _write_position(row, ahead_of_row + 1 if own_key is not None else None)

    logger.debug(
        "Queue maintained for %s %s (%s -> %s): %d other rows rewritten",
        change.operation.value, row.id, change.old_status, change.new_status, len(rewritten),
    )
    return rewritten


def reindex(db: Session) -> list[ApprovalRequest]:
    """Full recompute over the pending set; a no-op when positions are already dense and ordered."""
    rewritten = [
        row for rank, row in enumerate(_pending_rows(db), start=1) if _write_position(row, rank)
    ]
    if rewritten:
        logger.info("Reindex rewrote %d queue positions", len(rewritten))
    return rewritten
