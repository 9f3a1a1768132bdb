"""
deskvfs Database Base — SQLAlchemy declarative base and timestamp mixin.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all deskvfs tables."""
    pass


class TimestampMixin:
    """Adds created / modified columns."""
    created = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    modified = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
