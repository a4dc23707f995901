"""ChangeEvent ORM model: row-level change feed for polling subscribers.

Rows are written in the same transaction as the change they describe, so a
subscriber reading by ascending ``seq`` only ever sees committed state.
"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, JSON, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from approval_tracker.database import Base
from approval_tracker.models.request import utcnow


class Operation(str, enum.Enum):
    insert = "insert"
    update = "update"
    delete = "delete"


class ChangeEvent(Base):
    __tablename__ = "change_events"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    table_name = Column(String(50), nullable=False)
    operation = Column(SAEnum(Operation, name="change_operation"), nullable=False)
    row_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
