"""Audit record model: append-only."""

from datetime import timezone

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.types import TypeDecorator

from mailprefs.db.base import Base


class UTCDateTime(TypeDecorator):
    """Store aware datetimes as naive UTC; hand them back tagged as UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to UTCDateTime column")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class AuditRecord(Base):
    """One row per completed customer action.

    This table is APPEND-ONLY: rows are never updated. The only delete is
    the admin-triggered full clear.
    """
    __tablename__ = "email_processing_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recorded_at = Column(UTCDateTime, nullable=False, index=True)
    email = Column(String(320), nullable=False)
    action = Column(String(64), nullable=False, index=True)  # e.g. "PAUSE", "BBAU"

    def __repr__(self) -> str:
        return f"<AuditRecord {self.id} {self.action} {self.email}>"
