"""ApprovalAction ORM model: the append-only record of a decision."""
import uuid
import enum
from sqlalchemy import Column, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from approval_tracker.database import Base
from approval_tracker.models.request import utcnow


class Decision(str, enum.Enum):
    approved = "approved"
    rejected = "rejected"


class ApprovalAction(Base):
    __tablename__ = "approval_actions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # unique: first decision wins, a request never carries two actions
    request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("approval_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    approver_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    decision = Column(SAEnum(Decision, name="approval_decision"), nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    request = relationship("ApprovalRequest", back_populates="actions")
