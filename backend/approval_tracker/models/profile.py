"""Profile ORM model: display name, department and role of an identity-provider user."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from approval_tracker.database import Base
from approval_tracker.models.request import utcnow


class Role(str, enum.Enum):
    employee = "employee"
    approver = "approver"
    admin = "admin"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, default="Unknown")
    department = Column(String(100), nullable=False, default="General")
    role = Column(SAEnum(Role, name="profile_role"), nullable=False, default=Role.employee)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
