"""
SQLAlchemy declarative base and the timestamp mixin shared by all tables.
"""
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Models register here so init_db() can create their tables:
        class Role(Base, TimestampMixin):
            __tablename__ = "roles"
            id: Mapped[str] = mapped_column(String(26), primary_key=True)
    """
    pass


class TimestampMixin:
    """created_at / updated_at columns filled in by the database."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
