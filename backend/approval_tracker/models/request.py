"""ApprovalRequest ORM model: one submission waiting in (or resolved from) the queue."""
import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, DateTime, Enum as SAEnum, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from approval_tracker.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.pending


class ApprovalRequest(Base):
    __tablename__ = "approval_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submitter_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=True)
    department = Column(String(100), nullable=False)
    # Monotonic submission order, assigned under the pending-set lock; breaks created_at ties
    submission_seq = Column(Integer, nullable=False, unique=True)
    status = Column(SAEnum(RequestStatus, name="request_status"), nullable=False, default=RequestStatus.pending)
    # Only meaningful while pending; written exclusively by the queue maintainer
    queue_position = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    actions = relationship("ApprovalAction", back_populates="request", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_approval_requests_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ApprovalRequest(id={self.id}, status={self.status}, queue_position={self.queue_position})>"
