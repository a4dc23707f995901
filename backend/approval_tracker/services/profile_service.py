"""Profiles and role assignment.

New profiles always start as ``employee``; only an admin can promote or demote.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from approval_tracker.errors import ConflictError, NotFoundError, ValidationError
from approval_tracker.models.profile import Profile, Role
from approval_tracker.services.authorization import Principal, require_admin
from approval_tracker.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Unknown"
DEFAULT_DEPARTMENT = "General"


def create_profile(
    db: Session,
    name: Optional[str] = None,
    department: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
) -> Profile:
    """Register a profile for an identity-provider user."""
    profile_id = user_id or uuid.uuid4()

    def work() -> Profile:
        if db.get(Profile, profile_id):
            raise ConflictError(f"Profile {profile_id} already exists")
        profile = Profile(
            id=profile_id,
            name=(name or "").strip() or DEFAULT_NAME,
            department=(department or "").strip() or DEFAULT_DEPARTMENT,
            role=Role.employee,
        )
        db.add(profile)
        return profile

    profile = run_in_transaction(db, work, "create_profile")
    db.refresh(profile)
    logger.info("Created profile %s (%s, %s)", profile.id, profile.name, profile.department)
    return profile


def get_profile(db: Session, user_id: uuid.UUID) -> Profile:
    profile = db.get(Profile, user_id)
    if not profile:
        raise NotFoundError(f"Profile {user_id} not found")
    return profile


def list_profiles(db: Session) -> list[Profile]:
    return db.query(Profile).order_by(Profile.created_at.desc()).all()


def principal_for(db: Session, user_id: uuid.UUID) -> Principal:
    """Resolve the capabilities of a user from their assigned role."""
    profile = get_profile(db, user_id)
    return Principal.from_role(profile.id, profile.role)


def change_role(db: Session, principal: Principal, user_id: uuid.UUID, role: str) -> Profile:
    """Assign ``role`` to ``user_id``. Admin only."""
    require_admin(principal, action="change user roles")
    try:
        new_role = Role(role)
    except ValueError:
        raise ValidationError(f"Role must be one of {[r.value for r in Role]}, got {role!r}")

    def work() -> Profile:
        profile = get_profile(db, user_id)
        profile.role = new_role
        return profile

    profile = run_in_transaction(db, work, "change_role")
    db.refresh(profile)
    logger.info("User %s is now %s (changed by %s)", user_id, new_role.value, principal.user_id)
    return profile
