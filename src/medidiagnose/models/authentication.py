"""Email verification records."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .enums import AuthRecordType


class Authentication(Base):
    """
    One-time verification code issued at registration.

    A record is consumed by setting ``is_verified``; it is removed together
    with its user.
    """

    __tablename__ = "authentication"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    auth_code: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AuthRecordType.VERIFY.value,
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_authentication_code_type", "auth_code", "type", "is_verified"),
    )

    def __repr__(self) -> str:
        return f"<Authentication(id={self.id}, user_id={self.user_id}, verified={self.is_verified})>"
