"""Initial MediControl schema.

Revision ID: 0001
Revises:
Create Date: 2026-03-02
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _owner() -> sa.Column:
    return sa.Column(
        "user_id",
        sa.String(length=36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("avatar", sa.String(length=500)),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("premium_expires_at", sa.DateTime(timezone=True)),
        sa.Column("sms_credits", sa.Integer(), nullable=False, server_default="10"),
        sa.Column(
            "status",
            _enum("userstatus", "active", "suspended"),
            nullable=False,
            server_default="active",
        ),
        *_timestamps(),
    )

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("age", sa.Integer()),
        sa.Column("allergies", sa.JSON(), nullable=False),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.Column("emergency_contact_name", sa.String(length=200)),
        sa.Column("emergency_contact_phone", sa.String(length=32)),
        sa.Column("emergency_contact_relationship", sa.String(length=100)),
        sa.Column("primary_doctor_name", sa.String(length=200)),
        sa.Column("primary_doctor_phone", sa.String(length=32)),
        sa.Column("primary_doctor_specialty", sa.String(length=100)),
        sa.Column(
            "onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )

    op.create_table(
        "medications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("generic_name", sa.String(length=200)),
        sa.Column("dose", sa.Float(), nullable=False),
        sa.Column(
            "dose_unit",
            _enum("doseunit", "mg", "ml", "tablet", "drop", "capsule", "gram", "unit"),
            nullable=False,
        ),
        sa.Column(
            "frequency_type",
            _enum("frequencytype", "daily", "hours", "weekly", "as_needed"),
            nullable=False,
            server_default="daily",
        ),
        sa.Column("frequency_value", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("schedules", sa.JSON(), nullable=False),
        sa.Column("instructions", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            _enum("medicationstatus", "active", "inactive", "suspended"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("start_date", sa.Date()),
        sa.Column("end_date", sa.Date()),
        sa.Column("notes", sa.Text()),
        sa.Column("stock", sa.Float()),
        sa.Column("stock_unit", sa.String(length=32)),
        sa.Column("low_stock_threshold", sa.Float()),
        sa.Column("last_stock_update", sa.DateTime(timezone=True)),
        sa.Column("is_critical", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("critical_alert_delay", sa.Integer()),
        *_timestamps(),
    )
    op.create_index("ix_medications_user_id", "medications", ["user_id"])

    # No foreign key to medications: dose rows are deleted explicitly first.
    op.create_table(
        "dose_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("medication_id", sa.String(length=36), nullable=False),
        sa.Column("scheduled_time", sa.String(length=5), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            _enum("dosestatus", "pending", "taken", "skipped", "postponed"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("actual_time", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text()),
        sa.Column("postponed_to", sa.String(length=5)),
        *_timestamps(),
    )
    op.create_index("ix_dose_records_user_id", "dose_records", ["user_id"])
    op.create_index("ix_dose_records_medication_id", "dose_records", ["medication_id"])
    op.create_index("ix_dose_records_date", "dose_records", ["date"])

    op.create_table(
        "caregivers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("relationship", sa.String(length=50), nullable=False, server_default="other"),
        sa.Column("receive_alerts", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "receive_missed_dose", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "receive_panic_button", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        *_timestamps(),
    )
    op.create_index("ix_caregivers_user_id", "caregivers", ["user_id"])

    op.create_table(
        "caregiver_relationships",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "patient_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "caregiver_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("caregiver_email", sa.String(length=320), nullable=False),
        sa.Column("caregiver_name", sa.String(length=200)),
        sa.Column("relationship", sa.String(length=50), nullable=False, server_default="other"),
        sa.Column(
            "can_view_medications", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("can_view_doses", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_view_history", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_view_reports", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "can_receive_alerts", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "can_receive_missed_dose", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "can_receive_panic_button", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "status",
            _enum("relationshipstatus", "pending", "active", "revoked"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("accepted_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index(
        "ix_caregiver_relationships_patient_id", "caregiver_relationships", ["patient_id"]
    )
    op.create_index(
        "ix_caregiver_relationships_caregiver_user_id",
        "caregiver_relationships",
        ["caregiver_user_id"],
    )
    op.create_index(
        "ix_caregiver_relationships_caregiver_email",
        "caregiver_relationships",
        ["caregiver_email"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column(
            "type",
            _enum(
                "notificationtype",
                "caregiver_view",
                "caregiver_alert",
                "medication_reminder",
                "missed_dose",
                "low_stock",
                "system",
            ),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "voice_notes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("medication_id", sa.String(length=36)),
        sa.Column("medication_name", sa.String(length=200)),
        sa.Column("audio_base64", sa.Text(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("transcription", sa.Text()),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("dose_time", sa.String(length=5)),
        sa.Column("dose_date", sa.Date(), nullable=False),
        sa.Column("is_shared", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_voice_notes_user_id", "voice_notes", ["user_id"])
    op.create_index("ix_voice_notes_medication_id", "voice_notes", ["medication_id"])
    op.create_index("ix_voice_notes_dose_date", "voice_notes", ["dose_date"])

    op.create_table(
        "alert_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("medication_id", sa.String(length=36), nullable=False),
        sa.Column(
            "kind",
            _enum("alertkind", "missed_dose", "reminder", "low_stock"),
            nullable=False,
        ),
        sa.Column("dose_date", sa.Date(), nullable=False),
        sa.Column("scheduled_time", sa.String(length=5), nullable=False),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "medication_id", "dose_date", "scheduled_time", "kind", name="uq_alert_records_dose"
        ),
    )
    op.create_index("ix_alert_records_user_id", "alert_records", ["user_id"])

    op.create_table(
        "revoked_tokens",
        sa.Column("jti", sa.String(length=64), primary_key=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "revoked_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("revoked_tokens")
    op.drop_index("ix_alert_records_user_id", table_name="alert_records")
    op.drop_table("alert_records")
    op.drop_index("ix_voice_notes_dose_date", table_name="voice_notes")
    op.drop_index("ix_voice_notes_medication_id", table_name="voice_notes")
    op.drop_index("ix_voice_notes_user_id", table_name="voice_notes")
    op.drop_table("voice_notes")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index(
        "ix_caregiver_relationships_caregiver_email", table_name="caregiver_relationships"
    )
    op.drop_index(
        "ix_caregiver_relationships_caregiver_user_id", table_name="caregiver_relationships"
    )
    op.drop_index("ix_caregiver_relationships_patient_id", table_name="caregiver_relationships")
    op.drop_table("caregiver_relationships")
    op.drop_index("ix_caregivers_user_id", table_name="caregivers")
    op.drop_table("caregivers")
    op.drop_index("ix_dose_records_date", table_name="dose_records")
    op.drop_index("ix_dose_records_medication_id", table_name="dose_records")
    op.drop_index("ix_dose_records_user_id", table_name="dose_records")
    op.drop_table("dose_records")
    op.drop_index("ix_medications_user_id", table_name="medications")
    op.drop_table("medications")
    op.drop_table("user_profiles")
    op.drop_table("users")
