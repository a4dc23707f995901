"""FastAPI dependencies: principal resolution from the identity provider header."""
import logging
import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from approval_tracker.database import get_db
from approval_tracker.errors import AuthenticationError, NotFoundError
from approval_tracker.services import profile_service
from approval_tracker.services.authorization import Principal

logger = logging.getLogger(__name__)


def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the caller from ``X-User-Id``, set upstream by the identity provider."""
    if not x_user_id:
        raise AuthenticationError("Missing X-User-Id header")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise AuthenticationError("Malformed X-User-Id header")
    try:
        return profile_service.principal_for(db, user_id)
    except NotFoundError:
        logger.warning("Rejected unknown user %s", user_id)
        raise AuthenticationError("Unknown user")
