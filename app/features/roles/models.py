"""
Role document and audit log models.

A role stores its grants as a JSON list of permission strings, always in
normalized (minimal) form.
"""
from typing import Any, Dict
from sqlalchemy import String, Boolean, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column
from ulid import ULID

from app.core.database.base import Base, TimestampMixin


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


class Role(Base, TimestampMixin):
    """
    Role document.

    role_key is the immutable identifier chosen at creation (e.g. "sales_manager");
    name and description are display fields and may change.
    """
    __tablename__ = "roles"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Role definition
    role_key: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Policy, e.g. ["leads:*", "contacts:read"] or ["*"]
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    is_system_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, role_key={self.role_key!r}, permissions={len(self.permissions or [])})>"


class AuditLog(Base, TimestampMixin):
    """
    Audit log for role writes.

    Tracks what changed, when, and from where.
    """
    __tablename__ = "audit_logs"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Action details
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)

    # Context
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action}, resource={self.resource_type}:{self.resource_id})>"
