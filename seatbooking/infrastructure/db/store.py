# seatbooking/infrastructure/db/store.py

import logging
from contextlib import contextmanager
from typing import ContextManager, Protocol

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from seatbooking.domain.exceptions import StoreError
from seatbooking.infrastructure.db.session import (
    Base,
    build_engine,
    build_session_factory,
)

# Registers the tables on Base.metadata.
from seatbooking.infrastructure.db import models  # noqa: F401


logger = logging.getLogger(__name__)


class StoreProvider(Protocol):
    """
    Capability interface of a durable ticket store.
    The booking engine depends on this only, never on a concrete backend.
    """

    def init(self) -> None:
        ...

    def ping(self) -> None:
        ...

    def transaction(self) -> ContextManager[Session]:
        ...


class SqlTicketStore:
    """SQLAlchemy-backed ticket store (PostgreSQL in production, SQLite in tests)."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    @classmethod
    def from_url(
        cls,
        url: str | None = None,
        lock_timeout: float | None = None,
    ) -> "SqlTicketStore":
        return cls(build_engine(url, lock_timeout=lock_timeout))

    def init(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to initialize ticket store schema") from exc

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreError("Ticket store is not reachable") from exc

    @contextmanager
    def transaction(self):
        """
        One unit of work. Commits on clean exit, rolls back on any error.
        SQLAlchemy failures (connectivity, lock timeout, constraint
        violations) surface as StoreError.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Ticket store transaction rolled back: %s", exc)
            raise StoreError(f"Ticket store operation failed: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
