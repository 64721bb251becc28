"""Initial schema.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

Tables created
--------------
- users             : accounts, access flags and optional patient profile
- authentication    : email verification codes
- permissions       : named permissions
- roles             : named permission bundles
- role_permissions  : role -> permission links
- user_roles        : user -> role links
- user_permissions  : user -> directly granted permission links
- medical_records   : scan / diagnosis events
- appointments      : booked doctor slots, unique per (doctor, date, slot)

Rollback
--------
``downgrade()`` drops the tables leaf first.
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Lowercased email address (login identifier)"),
        sa.Column("password", sa.String(255), nullable=False, comment="bcrypt hash"),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_staff", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(30), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("emergency_contact", sa.String(200), nullable=True),
        sa.Column("medical_history", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True, comment="Admin or doctor who created this account"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("password_reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_is_active", "users", ["is_active"])
    op.create_index("ix_users_is_staff", "users", ["is_staff"])
    op.create_index("ix_users_created_at", "users", ["created_at"])
    op.create_index("ix_users_flags_active", "users", ["is_superuser", "is_staff", "is_active"])

    # ------------------------------------------------------------------
    # authentication
    # ------------------------------------------------------------------
    op.create_table(
        "authentication",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("auth_code", sa.String(128), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="verify"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("auth_code"),
    )
    op.create_index("ix_authentication_user_id", "authentication", ["user_id"])
    op.create_index(
        "ix_authentication_code_type",
        "authentication",
        ["auth_code", "type", "is_verified"],
    )

    # ------------------------------------------------------------------
    # permissions / roles
    # ------------------------------------------------------------------
    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_permissions_name", "permissions", ["name"], unique=True)

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    op.create_table(
        "role_permissions",
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("permission_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("role_id", "permission_id"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permission_id"], ["permissions.id"], ondelete="CASCADE"),
    )
    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "role_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
    )
    op.create_table(
        "user_permissions",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("permission_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "permission_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permission_id"], ["permissions.id"], ondelete="CASCADE"),
    )

    # ------------------------------------------------------------------
    # medical_records
    # ------------------------------------------------------------------
    op.create_table(
        "medical_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=True),
        sa.Column("scan_type", sa.String(100), nullable=True),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column(
            "analysis_result",
            sa.Text(),
            nullable=True,
            comment="Free-text findings produced by the analysis step",
        ),
        sa.Column("image_url", sa.String(1024), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_medical_records_patient_id", "medical_records", ["patient_id"])
    op.create_index("ix_medical_records_doctor_id", "medical_records", ["doctor_id"])
    op.create_index("ix_medical_records_scan_type", "medical_records", ["scan_type"])
    op.create_index("ix_medical_records_created_at", "medical_records", ["created_at"])
    op.create_index(
        "ix_medical_records_patient_created",
        "medical_records",
        ["patient_id", "created_at"],
    )

    # ------------------------------------------------------------------
    # appointments
    # ------------------------------------------------------------------
    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("appointment_type", sa.String(30), nullable=False, server_default="consultation"),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.String(5), nullable=False, comment="HH:MM"),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("symptoms", sa.Text(), nullable=True),
        sa.Column("urgency", sa.String(20), nullable=False, server_default="routine"),
        sa.Column("status", sa.String(20), nullable=False, server_default="scheduled"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "doctor_id",
            "scheduled_date",
            "time_slot",
            name="uq_appointments_doctor_slot",
        ),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index("ix_appointments_scheduled_date", "appointments", ["scheduled_date"])
    op.create_index("ix_appointments_status", "appointments", ["status"])


def downgrade() -> None:
    """Drop everything in reverse dependency order."""
    op.drop_table("appointments")
    op.drop_table("medical_records")
    op.drop_table("user_permissions")
    op.drop_table("user_roles")
    op.drop_table("role_permissions")
    op.drop_index("ix_roles_name", table_name="roles")
    op.drop_table("roles")
    op.drop_index("ix_permissions_name", table_name="permissions")
    op.drop_table("permissions")
    op.drop_table("authentication")
    op.drop_index("ix_users_flags_active", table_name="users")
    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_is_staff", table_name="users")
    op.drop_index("ix_users_is_active", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
