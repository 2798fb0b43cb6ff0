"""Audit service: append-only log of completed customer actions."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, NamedTuple, Optional, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from mailprefs.core.exceptions import StorageError, ValidationError
from mailprefs.models.audit_log import AuditRecord
from mailprefs.services.actions import normalize_action

logger = logging.getLogger("mailprefs.audit")

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S %Z"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DisplayRecord(NamedTuple):
    """A row as shown on the results page and in CSV exports."""

    formatted_date: str
    email: str
    action: str


class AuditStore(Protocol):
    """What handlers need from the audit log, whatever engine backs it."""

    def record(self, email: str, action: str) -> int: ...

    def summarize(self) -> Dict[str, int]: ...

    def list_all(self) -> List[DisplayRecord]: ...

    def list_by_action(self, action: str) -> List[DisplayRecord]: ...

    def clear(self) -> int: ...


def format_timestamp(moment: datetime, tz: ZoneInfo) -> str:
    return moment.astimezone(tz).strftime(DISPLAY_FORMAT)


def _validate(email: str, action: str):
    if not email or not email.strip():
        raise ValidationError("Email is required for an audit record")
    return email.strip(), normalize_action(action)


class SqlAuditStore:
    """Audit store backed by a SQLAlchemy engine (SQLite by default).

    Each operation opens and closes its own session, so the store can be
    shared across request threads.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        display_timezone: str = "Australia/Sydney",
        clock: Clock = utc_now,
    ):
        self._session_factory = session_factory
        self._tz = ZoneInfo(display_timezone)
        self._clock = clock

    def record(self, email: str, action: str) -> int:
        """Append one immutable record stamped with the current instant.

        Raises:
            ValidationError: empty email or malformed tag.
            StorageError: the database could not be written.
        """
        email, action = _validate(email, action)
        entry = AuditRecord(recorded_at=self._clock(), email=email, action=action)
        try:
            with self._session_factory() as db:
                db.add(entry)
                db.commit()
                record_id = entry.id
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert audit record: {e}") from e

        logger.info(
            "Recorded %s action for %s at %s",
            action, email, format_timestamp(entry.recorded_at, self._tz),
        )
        return record_id

    def summarize(self) -> Dict[str, int]:
        """Count records per action tag. Tags with no records are absent."""
        query = select(AuditRecord.action, func.count(AuditRecord.id)).group_by(AuditRecord.action)
        try:
            with self._session_factory() as db:
                return {action: count for action, count in db.execute(query)}
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query action summary: {e}") from e

    def list_all(self) -> List[DisplayRecord]:
        return self._list()

    def list_by_action(self, action: str) -> List[DisplayRecord]:
        return self._list(normalize_action(action))

    def clear(self) -> int:
        """Delete every record. Irreversible."""
        try:
            with self._session_factory() as db:
                result = db.execute(delete(AuditRecord))
                db.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to clear records: {e}") from e

        deleted = result.rowcount if result.rowcount is not None else 0
        logger.warning("Cleared %d records from the audit log", deleted)
        return deleted

    def _list(self, action: Optional[str] = None) -> List[DisplayRecord]:
        query = select(AuditRecord.recorded_at, AuditRecord.email, AuditRecord.action)
        if action is not None:
            query = query.where(AuditRecord.action == action)
        query = query.order_by(AuditRecord.recorded_at.desc(), AuditRecord.id.desc())

        try:
            with self._session_factory() as db:
                rows = db.execute(query).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query records: {e}") from e

        return [
            DisplayRecord(format_timestamp(recorded_at, self._tz), email, tag)
            for recorded_at, email, tag in rows
        ]


class InMemoryAuditStore:
    """List-backed store with the same ordering rules, used in tests."""

    def __init__(self, display_timezone: str = "Australia/Sydney", clock: Clock = utc_now):
        self._tz = ZoneInfo(display_timezone)
        self._clock = clock
        self._lock = threading.Lock()
        self._rows: List[tuple] = []
        self._next_id = 1

    def record(self, email: str, action: str) -> int:
        email, action = _validate(email, action)
        with self._lock:
            record_id = self._next_id
            self._next_id += 1
            self._rows.append((record_id, self._clock(), email, action))
        return record_id

    def summarize(self) -> Dict[str, int]:
        summary: Dict[str, int] = {}
        with self._lock:
            for _, _, _, action in self._rows:
                summary[action] = summary.get(action, 0) + 1
        return summary

    def list_all(self) -> List[DisplayRecord]:
        return self._list()

    def list_by_action(self, action: str) -> List[DisplayRecord]:
        return self._list(normalize_action(action))

    def clear(self) -> int:
        with self._lock:
            deleted = len(self._rows)
            self._rows = []
        return deleted

    def _list(self, action: Optional[str] = None) -> List[DisplayRecord]:
        with self._lock:
            rows = [row for row in self._rows if action is None or row[3] == action]
        rows.sort(key=lambda row: (row[1], row[0]), reverse=True)
        return [DisplayRecord(format_timestamp(at, self._tz), email, tag) for _, at, email, tag in rows]
