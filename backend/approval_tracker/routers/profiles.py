"""Profile API routes."""
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from approval_tracker.database import get_db
from approval_tracker.dependencies import get_principal
from approval_tracker.schemas.profile import ProfileCreate, ProfileOut, RoleUpdate
from approval_tracker.services import profile_service
from approval_tracker.services.authorization import Principal

router = APIRouter()


@router.post("/", response_model=ProfileOut, status_code=status.HTTP_201_CREATED)
def create_profile(payload: ProfileCreate, db: Session = Depends(get_db)):
    """Register a user profile; every new profile starts as an employee."""
    return profile_service.create_profile(
        db, name=payload.name, department=payload.department, user_id=payload.id
    )


@router.get("/", response_model=list[ProfileOut])
def list_profiles(db: Session = Depends(get_db)):
    return profile_service.list_profiles(db)


@router.get("/{user_id}", response_model=ProfileOut)
def get_profile(user_id: UUID, db: Session = Depends(get_db)):
    return profile_service.get_profile(db, user_id)


@router.patch("/{user_id}/role", response_model=ProfileOut)
def change_role(
    user_id: UUID,
    payload: RoleUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Assign a role to a user (admin)."""
    return profile_service.change_role(db, principal, user_id, payload.role)
