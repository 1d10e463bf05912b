"""SQLAlchemy engine and session lifecycle for the ETF store."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from etf_intelligence.config.state import DatabaseConfig
from etf_intelligence.infrastructure.observability import get_infrastructure_logger
from etf_intelligence.storage.schemas.tables import Base

log = get_infrastructure_logger("database-engine")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(config: DatabaseConfig) -> Engine:
    """Build an engine for the configured URL.

    SQLite files get their parent directory created and foreign keys enabled.
    """
    url = make_url(config.url)
    kwargs: dict = {"echo": config.echo}

    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    else:
        kwargs["pool_pre_ping"] = config.pool_pre_ping
        kwargs["pool_recycle"] = 1800

    engine = create_engine(url, **kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    log.info("engine_created", backend=url.get_backend_name(), database=url.database)
    return engine


def init_schema(engine: Engine) -> None:
    """Create missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(engine)
    log.info("schema_initialized", tables=sorted(Base.metadata.tables))


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """One unit of work: commit on success, roll back on any error."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
