"""
Database Session Management
===========================

Explicit store handle for the decision map.

The engine never reaches for a module-level connection: every call receives
a Session opened from a DecisionStore, and the FastAPI app keeps one store
on ``app.state.store``.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Optional, Tuple

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .models import Base
from ..schemas import Instance


def _create_engine_for_url(database_url: str, echo: bool = False):
    # SQLite for development/testing
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

        # Cascading FKs are off by default in SQLite
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=echo,
    )


class DecisionStore:
    """
    Store handle: engine, session factory and per-scope ingest locks.

    Usage:
        store = DecisionStore("sqlite:///./mapa.db")
        store.init_schema()
        with store.session() as db:
            ...
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.engine = _create_engine_for_url(database_url, echo=echo)
        self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def init_schema(self) -> None:
        """Create tables"""
        Base.metadata.create_all(bind=self.engine)

    def drop_schema(self) -> None:
        """Drop all tables (use with caution!)"""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def new_session(self) -> Session:
        return self._session_factory()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for a database session.

        Commits on success, rolls back on error.
        """
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def ingest_lock(self, tenant_id: str, instance: Instance) -> threading.Lock:
        """Lock serializing ingest batches for one (tenant, instance) scope."""
        key = (tenant_id, Instance(instance).value)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


def get_store(request: Request) -> DecisionStore:
    """FastAPI dependency returning the app's store handle"""
    store: Optional[DecisionStore] = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("DecisionStore not configured on app.state.store")
    return store


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database session.

    Usage:
        @router.get("/items")
        def read_items(db: Session = Depends(get_db)):
            ...
    """
    db = get_store(request).new_session()
    try:
        yield db
    finally:
        db.close()
