"""Transaction runner shared by the store operations.

Each operation is a ``work`` callable that performs every read and write of one
unit of work. The runner commits it, rolls it back on any failure, and re-runs
it from the top when the store reports a lock timeout or serialization
conflict, so a retried attempt re-derives queue positions from fresh state.
On SQLite each attempt opens with ``BEGIN IMMEDIATE``: writers queue on the
busy timeout rather than racing, and a retry only happens when that wait runs
out.
"""
import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from approval_tracker.database import BEGIN_MODE_OPTION
from approval_tracker.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 5
RETRY_BACKOFF_SECONDS = 0.05


def _begin_unit_of_work(db: Session) -> None:
    # A read-only transaction left open by an earlier call would pin a stale snapshot
    if db.in_transaction() and not (db.new or db.dirty or db.deleted):
        db.rollback()
    if not db.in_transaction():
        db.connection(execution_options={BEGIN_MODE_OPTION: "IMMEDIATE"})


def run_in_transaction(db: Session, work: Callable[[], T], operation: str) -> T:
    """Run ``work`` and commit; retry store conflicts, raise TransientStoreError when exhausted."""
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            _begin_unit_of_work(db)
            result = work()
            db.commit()
            return result
        except OperationalError as exc:
            db.rollback()
            if attempt == MAX_ATTEMPTS:
                logger.error("%s failed after %d attempts: %s", operation, attempt, exc)
                raise TransientStoreError(f"{operation} failed: the store is unavailable, retry later") from exc
            logger.warning("%s hit a store conflict on attempt %d, retrying", operation, attempt)
            time.sleep(RETRY_BACKOFF_SECONDS * attempt)
        except Exception:
            db.rollback()
            raise
    raise AssertionError("unreachable")
