"""
Database abstraction for SQL stores and an in-memory test implementation.
"""

from __future__ import annotations

import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Protocol

from sqlalchemy import Boolean, Column, Integer, String, create_engine, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

SUBMISSION_FIELDS = ("name", "email", "subject", "message")


class DuplicateRecordError(Exception):
    """Raised when a keyed insert collides with an existing record."""


class DbClient(Protocol):
    """Interface for database access."""

    def create_submission(
        self, name: str, email: str, subject: str, message: str
    ) -> "ContactFormSubmission":
        ...

    def get_submission(self, submission_id: str) -> Optional["ContactFormSubmission"]:
        ...

    def list_submissions(self) -> list["ContactFormSubmission"]:
        ...

    def update_submission(
        self, submission_id: str, fields: dict
    ) -> Optional["ContactFormSubmission"]:
        ...

    def delete_submission(self, submission_id: str) -> bool:
        ...

    def insert_submissions(
        self, records: Iterable[dict], *, session: Any = None
    ) -> list["ContactFormSubmission"]:
        ...

    def insert_seed_status_if_absent(self, status_id: str, fields: dict) -> bool:
        ...

    def update_seed_status(
        self, status_id: str, fields: dict, *, session: Any = None
    ) -> None:
        ...

    def get_seed_status(self, status_id: str) -> Optional["SeedStatus"]:
        ...

    def transaction(self) -> Any:
        ...


@dataclass
class ContactFormSubmission:
    id: str
    name: str
    email: str
    subject: str
    message: str
    submission_timestamp: int

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.message,
            "submission_timestamp": self.submission_timestamp,
        }


@dataclass
class SeedStatus:
    """Bookkeeping record for the one-time mock data population."""

    id: str
    executed: bool
    timestamp: int
    instance: str
    completed: Optional[bool] = None
    completed_timestamp: Optional[int] = None
    failed: Optional[bool] = None
    failed_timestamp: Optional[int] = None
    error: Optional[str] = None

    def as_dict(self) -> dict:
        """Document form; outcome fields that were never written are omitted."""
        doc = {
            "executed": self.executed,
            "timestamp": self.timestamp,
            "instance": self.instance,
            "completed": self.completed,
            "completedTimestamp": self.completed_timestamp,
            "failed": self.failed,
            "failedTimestamp": self.failed_timestamp,
            "error": self.error,
        }
        return {key: value for key, value in doc.items() if value is not None}


def _new_id() -> str:
    return uuid.uuid4().hex


def _build_submission(record: dict) -> ContactFormSubmission:
    return ContactFormSubmission(
        id=_new_id(),
        name=record["name"],
        email=record["email"],
        subject=record["subject"],
        message=record["message"],
        submission_timestamp=int(record["submission_timestamp"]),
    )


@dataclass
class InMemoryTransaction:
    """Buffers writes until the enclosing transaction commits."""

    pending: list[Callable[[], None]] = field(default_factory=list)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.submissions: Dict[str, ContactFormSubmission] = {}
        self.seed_statuses: Dict[str, SeedStatus] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.submissions.clear()
            self.seed_statuses.clear()

    def create_submission(
        self, name: str, email: str, subject: str, message: str
    ) -> ContactFormSubmission:
        record = ContactFormSubmission(
            id=_new_id(),
            name=name,
            email=email,
            subject=subject,
            message=message,
            submission_timestamp=int(time.time()),
        )
        with self._lock:
            self.submissions[record.id] = record
        return record

    def get_submission(self, submission_id: str) -> Optional[ContactFormSubmission]:
        return self.submissions.get(submission_id)

    def list_submissions(self) -> list[ContactFormSubmission]:
        return sorted(
            self.submissions.values(),
            key=lambda record: (record.submission_timestamp, record.id),
        )

    def update_submission(
        self, submission_id: str, fields: dict
    ) -> Optional[ContactFormSubmission]:
        changes = {k: v for k, v in fields.items() if k in SUBMISSION_FIELDS}
        with self._lock:
            existing = self.submissions.get(submission_id)
            if not existing:
                return None
            updated = replace(existing, **changes)
            self.submissions[submission_id] = updated
            return updated

    def delete_submission(self, submission_id: str) -> bool:
        with self._lock:
            return self.submissions.pop(submission_id, None) is not None

    def insert_submissions(
        self, records: Iterable[dict], *, session: Optional[InMemoryTransaction] = None
    ) -> list[ContactFormSubmission]:
        built = [_build_submission(record) for record in records]

        def apply() -> None:
            for record in built:
                self.submissions[record.id] = record

        if session is not None:
            session.pending.append(apply)
        else:
            with self._lock:
                apply()
        return built

    def insert_seed_status_if_absent(self, status_id: str, fields: dict) -> bool:
        with self._lock:
            if status_id in self.seed_statuses:
                return False
            self.seed_statuses[status_id] = SeedStatus(id=status_id, **fields)
            return True

    def update_seed_status(
        self,
        status_id: str,
        fields: dict,
        *,
        session: Optional[InMemoryTransaction] = None,
    ) -> None:
        def apply() -> None:
            existing = self.seed_statuses.get(status_id)
            if existing:
                self.seed_statuses[status_id] = replace(existing, **fields)

        if session is not None:
            session.pending.append(apply)
        else:
            with self._lock:
                apply()

    def get_seed_status(self, status_id: str) -> Optional[SeedStatus]:
        return self.seed_statuses.get(status_id)

    @contextmanager
    def transaction(self) -> Iterator[InMemoryTransaction]:
        txn = InMemoryTransaction()
        yield txn
        # Only reached when the body did not raise.
        with self._lock:
            for apply in txn.pending:
                apply()


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_submission(self, row: "SubmissionRow") -> ContactFormSubmission:
        return ContactFormSubmission(
            id=row.id,
            name=row.name,
            email=row.email,
            subject=row.subject,
            message=row.message,
            submission_timestamp=row.submission_timestamp,
        )

    def _to_seed_status(self, row: "SeedStatusRow") -> SeedStatus:
        return SeedStatus(
            id=row.id,
            executed=row.executed,
            timestamp=row.timestamp,
            instance=row.instance,
            completed=row.completed,
            completed_timestamp=row.completed_timestamp,
            failed=row.failed,
            failed_timestamp=row.failed_timestamp,
            error=row.error,
        )

    def _insert_ignoring_conflicts(self, table):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert

            return pg_insert(table).on_conflict_do_nothing(index_elements=["id"])
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as sqlite_insert

            return sqlite_insert(table).on_conflict_do_nothing(index_elements=["id"])
        # Other dialects surface the conflict as an IntegrityError.
        return insert(table)

    def create_submission(
        self, name: str, email: str, subject: str, message: str
    ) -> ContactFormSubmission:
        with self.Session() as session:
            row = SubmissionRow(
                id=_new_id(),
                name=name,
                email=email,
                subject=subject,
                message=message,
                submission_timestamp=int(time.time()),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_submission(row)

    def get_submission(self, submission_id: str) -> Optional[ContactFormSubmission]:
        with self.Session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                return None
            return self._to_submission(row)

    def list_submissions(self) -> list[ContactFormSubmission]:
        with self.Session() as session:
            stmt = select(SubmissionRow).order_by(
                SubmissionRow.submission_timestamp.asc(), SubmissionRow.id.asc()
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_submission(row) for row in rows]

    def update_submission(
        self, submission_id: str, fields: dict
    ) -> Optional[ContactFormSubmission]:
        with self.Session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                return None
            for key, value in fields.items():
                if key in SUBMISSION_FIELDS:
                    setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_submission(row)

    def delete_submission(self, submission_id: str) -> bool:
        with self.Session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def insert_submissions(
        self, records: Iterable[dict], *, session: Optional[Session] = None
    ) -> list[ContactFormSubmission]:
        built = [_build_submission(record) for record in records]
        rows = [
            SubmissionRow(
                id=record.id,
                name=record.name,
                email=record.email,
                subject=record.subject,
                message=record.message,
                submission_timestamp=record.submission_timestamp,
            )
            for record in built
        ]
        if session is not None:
            session.add_all(rows)
            session.flush()
        else:
            with self.Session.begin() as own_session:
                own_session.add_all(rows)
        return built

    def insert_seed_status_if_absent(self, status_id: str, fields: dict) -> bool:
        stmt = self._insert_ignoring_conflicts(SeedStatusRow.__table__).values(
            id=status_id, **fields
        )
        try:
            with self.Session.begin() as session:
                result = session.execute(stmt)
                inserted = result.rowcount == 1
        except IntegrityError as exc:
            raise DuplicateRecordError(status_id) from exc
        return inserted

    def update_seed_status(
        self, status_id: str, fields: dict, *, session: Optional[Session] = None
    ) -> None:
        stmt = (
            update(SeedStatusRow.__table__)
            .where(SeedStatusRow.__table__.c.id == status_id)
            .values(**fields)
        )
        if session is not None:
            session.execute(stmt)
        else:
            with self.Session.begin() as own_session:
                own_session.execute(stmt)

    def get_seed_status(self, status_id: str) -> Optional[SeedStatus]:
        with self.Session() as session:
            row = session.get(SeedStatusRow, status_id)
            if not row:
                return None
            return self._to_seed_status(row)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit on normal exit, roll back on error, always close the session."""
        with self.Session() as session:
            with session.begin():
                yield session


Base = declarative_base()


class SubmissionRow(Base):
    __tablename__ = "contact_form_submissions"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    message = Column(String, nullable=False)
    submission_timestamp = Column(Integer, nullable=False, index=True)


class SeedStatusRow(Base):
    __tablename__ = "mock_data_execution"

    id = Column(String, primary_key=True)
    executed = Column(Boolean, nullable=False, default=True)
    timestamp = Column(Integer, nullable=False)
    instance = Column(String, nullable=False)
    completed = Column(Boolean, nullable=True)
    completed_timestamp = Column(Integer, nullable=True)
    failed = Column(Boolean, nullable=True)
    failed_timestamp = Column(Integer, nullable=True)
    error = Column(String, nullable=True)
