"""Shared plumbing for repositories: transactions and error translation."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from etf_intelligence.infrastructure.database.engine import session_scope
from etf_intelligence.infrastructure.observability import get_storage_logger
from etf_intelligence.storage.exceptions import PersistenceError


class BaseRepository:
    """Repository over a SQLAlchemy session factory.

    Each public method is one transaction. SQLAlchemy errors never leave the
    storage layer; they are re-raised as PersistenceError.
    """

    component = "repository"

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory
        self.log = get_storage_logger(self.component)

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        try:
            with session_scope(self.session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            self.log.error("storage_operation_failed", operation=operation, error=str(e))
            raise PersistenceError(f"{operation} failed: {e}", operation=operation) from e
