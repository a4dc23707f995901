"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Creates all tables for the approval queue:
profiles, approval_requests, approval_actions, change_events.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

request_status = sa.Enum("pending", "approved", "rejected", name="request_status")
approval_decision = sa.Enum("approved", "rejected", name="approval_decision")
profile_role = sa.Enum("employee", "approver", "admin", name="profile_role")
change_operation = sa.Enum("insert", "update", "delete", name="change_operation")


def upgrade() -> None:
    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, server_default="Unknown"),
        sa.Column("department", sa.String(100), nullable=False, server_default="General"),
        sa.Column("role", profile_role, nullable=False, server_default="employee"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- approval_requests ---
    op.create_table(
        "approval_requests",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("submitter_id", sa.Uuid, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("department", sa.String(100), nullable=False),
        sa.Column("submission_seq", sa.Integer, nullable=False, unique=True),
        sa.Column("status", request_status, nullable=False, server_default="pending"),
        sa.Column("queue_position", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_approval_requests_submitter_id", "approval_requests", ["submitter_id"])
    op.create_index("ix_approval_requests_status_created_at", "approval_requests", ["status", "created_at"])

    # --- approval_actions ---
    op.create_table(
        "approval_actions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "request_id",
            sa.Uuid,
            sa.ForeignKey("approval_requests.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("approver_id", sa.Uuid, nullable=False),
        sa.Column("decision", approval_decision, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_approval_actions_approver_id", "approval_actions", ["approver_id"])

    # --- change_events ---
    op.create_table(
        "change_events",
        sa.Column("seq", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("table_name", sa.String(50), nullable=False),
        sa.Column("operation", change_operation, nullable=False),
        sa.Column("row_id", sa.Uuid, nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_change_events_row_id", "change_events", ["row_id"])


def downgrade() -> None:
    op.drop_table("change_events")
    op.drop_table("approval_actions")
    op.drop_table("approval_requests")
    op.drop_table("profiles")
    for enum_type in (change_operation, profile_role, approval_decision, request_status):
        enum_type.drop(op.get_bind(), checkfirst=True)
