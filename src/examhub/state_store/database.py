"""Database connection manager for State Store."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from examhub.state_store.models import Base
from examhub.state_store.vocabulary import seed_vocabularies, verify_vocabularies

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

MEMORY_PATH = ":memory:"


class SerializedSession(Session):
    """Session that holds a lock from creation until close.

    The in-memory database has a single connection shared by every thread,
    so only one session may use it at a time.
    """

    def __init__(self, *args: Any, lock: threading.RLock, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        lock.acquire()
        self._connection_lock: threading.RLock | None = lock

    def close(self) -> None:
        try:
            super().close()
        finally:
            lock, self._connection_lock = self._connection_lock, None
            if lock is not None:
                lock.release()


class Database:
    """Database connection manager.

    Manages SQLite database connections with WAL mode enabled. Sessions
    opened for writing start with ``BEGIN IMMEDIATE``, so a row read inside
    such a transaction cannot be rewritten by another writer before it
    commits. Read-only sessions use a deferred ``BEGIN``.
    """

    def __init__(self, db_path: str = "examhub.db") -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Use ":memory:" for in-memory DB.
        """
        self.db_path = db_path
        self._engine: Engine | None = None
        self._write_engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None
        self._memory_lock = threading.RLock()

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY_PATH

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.in_memory:
                # One connection shared across threads; SerializedSession guards it
                self._engine = create_engine(
                    "sqlite:///:memory:",
                    echo=False,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._engine = create_engine(
                    f"sqlite:///{self.db_path}",
                    echo=False,
                    connect_args={"timeout": 30},
                )

            @event.listens_for(self._engine, "connect")
            def set_sqlite_pragma(dbapi_connection: object, _connection_record: object) -> None:
                # Let SQLAlchemy's "begin" event emit BEGIN itself
                dbapi_connection.isolation_level = None  # type: ignore[attr-defined]
                cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            @event.listens_for(self._engine, "begin")
            def begin_transaction(conn: Connection) -> None:
                if conn.get_execution_options().get("begin_immediate"):
                    conn.exec_driver_sql("BEGIN IMMEDIATE")
                else:
                    conn.exec_driver_sql("BEGIN")

        return self._engine

    @property
    def write_engine(self) -> Engine:
        """Engine variant whose transactions take the write lock up front."""
        if self._write_engine is None:
            self._write_engine = self.engine.execution_options(begin_immediate=True)
        return self._write_engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if self._session_factory is None:
            if self.in_memory:
                self._session_factory = sessionmaker(
                    bind=self.engine,
                    class_=SerializedSession,
                    expire_on_commit=False,
                    lock=self._memory_lock,
                )
            else:
                self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def create_tables(self) -> None:
        """Create all tables if they don't exist and seed the vocabularies."""
        with self._memory_lock:
            Base.metadata.create_all(self.engine)
        with self.get_session(write=True) as session, session.begin():
            seed_vocabularies(session)

    def verify_reference_data(self) -> None:
        """Check the seeded vocabularies.

        Raises:
            ReferenceDataError: If a status or result row is missing.
        """
        with self.get_session() as session:
            verify_vocabularies(session)

    def get_session(self, write: bool = False) -> Session:
        """Get a new database session.

        Args:
            write: Start the session's transactions with BEGIN IMMEDIATE.

        Returns:
            A new SQLAlchemy session. Close it to release the in-memory lock.
        """
        if write:
            return self.session_factory(bind=self.write_engine)
        return self.session_factory()

    def is_wal_mode(self) -> bool:
        """Check if WAL mode is enabled.

        Returns:
            True if WAL mode is enabled.
        """
        with self._memory_lock, self.engine.connect() as conn:
            return conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"

    def close(self) -> None:
        """Close the database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._write_engine = None
            self._session_factory = None
