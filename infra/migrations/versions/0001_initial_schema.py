"""initial schema: providers, calendar, appointments, slot grid

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor", sa.String(length=120), nullable=False),
        sa.Column("action", sa.String(length=60), nullable=False),
        sa.Column("details", sa.String(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])

    op.create_table(
        "providers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("working_hours", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index("ix_providers_active", "providers", ["is_active"])

    op.create_table(
        "leave_periods",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("provider_id", sa.Uuid(), nullable=False),
        sa.Column("date_from", sa.Date(), nullable=False),
        sa.Column("date_to", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("date_from <= date_to", name="ck_leave_range_order"),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_leave_provider_range", "leave_periods", ["provider_id", "date_from", "date_to"]
    )

    op.create_table(
        "clinic_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("ends_at", sa.DateTime(), nullable=False),
        sa.Column("all_day", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("is_published", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("starts_at < ends_at", name="ck_event_time_order"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_event_live_range",
        "clinic_events",
        ["is_published", "is_deleted", "starts_at", "ends_at"],
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("provider_id", sa.Uuid(), nullable=False),
        sa.Column("subject_ref", sa.String(length=64), nullable=False),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="scheduled", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("duration_minutes > 0", name="ck_appt_duration_positive"),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appt_provider_start", "appointments", ["provider_id", "starts_at"])

    op.create_table(
        "slots",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("provider_id", sa.Uuid(), nullable=False),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="available", nullable=False),
        sa.Column("booking_ref", sa.String(length=64), nullable=True),
        sa.Column("booking_subject", sa.String(length=64), nullable=True),
        sa.Column("booking_reason", sa.String(length=255), nullable=True),
        sa.Column("blocking_ref", sa.String(length=64), nullable=True),
        sa.Column("blocking_reason", sa.String(length=255), nullable=True),
        sa.Column("last_modified_by", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("start_time < end_time", name="ck_slot_time_order"),
        sa.CheckConstraint(
            "status IN ('available', 'booked', 'blocked_leave', 'blocked_event', 'blocked_other')",
            name="ck_slot_status_valid",
        ),
        sa.CheckConstraint(
            "(status = 'available' AND booking_ref IS NULL AND blocking_ref IS NULL)"
            " OR (status = 'booked' AND booking_ref IS NOT NULL AND blocking_ref IS NULL)"
            " OR (status IN ('blocked_leave', 'blocked_event', 'blocked_other')"
            " AND booking_ref IS NULL AND blocking_ref IS NOT NULL)",
            name="ck_slot_refs_exclusive",
        ),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "provider_id", "slot_date", "start_time", "end_time",
            name="uq_slot_provider_day_bucket",
        ),
    )
    op.create_index("ix_slot_provider_day_status", "slots", ["provider_id", "slot_date", "status"])
    op.create_index("ix_slot_booking_ref", "slots", ["booking_ref"])


def downgrade() -> None:
    op.drop_index("ix_slot_booking_ref", table_name="slots")
    op.drop_index("ix_slot_provider_day_status", table_name="slots")
    op.drop_table("slots")
    op.drop_index("ix_appt_provider_start", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_event_live_range", table_name="clinic_events")
    op.drop_table("clinic_events")
    op.drop_index("ix_leave_provider_range", table_name="leave_periods")
    op.drop_table("leave_periods")
    op.drop_index("ix_providers_active", table_name="providers")
    op.drop_table("providers")
    op.drop_index("ix_audit_logs_timestamp", table_name="audit_logs")
    op.drop_table("audit_logs")
