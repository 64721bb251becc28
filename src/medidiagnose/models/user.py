"""
User Model for portal accounts.

SQLAlchemy 2.0 ORM model shared by administrators, doctors, staff and
patients. Access is driven by two flags:

    - is_superuser: full admin dashboard access, cannot be deleted
    - is_staff:     admin / doctor dashboard access

Role and permission assignments are id lists, stored as association
tables (``user_roles``, ``user_permissions``).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base
from .enums import UserRole, resolve_capabilities

if TYPE_CHECKING:
    from .permission import Permission
    from .role import Role


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)

user_permissions = Table(
    "user_permissions",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id",
        Integer,
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class User(Base):
    """
    User entity for authentication and authorization.

    Attributes:
        id: Primary key
        email: Unique login identifier, always stored lowercase
        password: bcrypt hash (never serialized)
        is_active: False until email verification or while suspended
        is_superuser / is_staff: access flags copied into the JWT at login
        roles / extra_permissions: assigned Role and Permission rows
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Lowercased email address (login identifier)",
    )
    password: Mapped[str] = mapped_column(String(255), nullable=False, comment="bcrypt hash")
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Authorization
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_superuser: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_staff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    # Profile
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[str | None] = mapped_column(String(200), nullable=True)
    medical_history: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Audit
    created_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Admin or doctor who created this account",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
    password_reset_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful authentication timestamp",
    )

    roles: Mapped[list[Role]] = relationship(
        "Role",
        secondary=user_roles,
        lazy="selectin",
    )
    extra_permissions: Mapped[list[Permission]] = relationship(
        "Permission",
        secondary=user_permissions,
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_users_flags_active", "is_superuser", "is_staff", "is_active"),
    )
    # Fetch server-side timestamps during flush instead of expiring them.
    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, superuser={self.is_superuser}, "
            f"staff={self.is_staff}, active={self.is_active})>"
        )

    @property
    def role(self) -> UserRole:
        return UserRole.from_flags(self.is_superuser, self.is_staff)

    @property
    def role_ids(self) -> list[int]:
        return sorted(r.id for r in self.roles)

    @property
    def permission_ids(self) -> list[int]:
        return sorted(p.id for p in self.extra_permissions)

    @property
    def capabilities(self) -> list[str]:
        return resolve_capabilities(self.is_superuser, self.is_staff)

    def apply_role(self, role: UserRole) -> None:
        """Set the access flags that correspond to ``role``."""
        self.is_superuser, self.is_staff = role.flags
