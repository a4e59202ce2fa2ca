"""Mini README: Engine and session construction for FeeLedger.

Structure:
    * build_engine - create an engine for the configured URL.
    * build_session_factory - sessionmaker bound to an engine.
    * init_database - create any missing tables.
    * session_scope - context manager committing or rolling back one unit of work.

SQLite needs three adjustments. In-memory URLs share one connection through
``StaticPool`` so every session sees the same data. Foreign keys are
switched on per connection so fine rows cascade with their student. The
driver's own transaction handling is turned off so that ``begin_nested``
savepoints (used by the CSV importer) stay inside the outer transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..logging_utils import get_logger
from .models import Base

LOGGER = get_logger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url in {"sqlite://", "sqlite:///:memory:"} or url.startswith("sqlite:///:memory:?")


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine, applying the SQLite specific connection options."""

    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if _is_memory_sqlite(url):
            options["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **options)

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, _connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            # SQLAlchemy emits BEGIN itself so SAVEPOINTs nest inside it.
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _on_begin(connection) -> None:
            connection.exec_driver_sql("BEGIN")

        LOGGER.info("Using SQLite database %s", url)
        return engine

    LOGGER.info("Using database %s", engine_label(url))
    return create_engine(url, echo=echo, pool_pre_ping=True)


def engine_label(url: str) -> str:
    """Hide credentials when logging a database URL."""

    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_database(engine: Engine) -> None:
    """Create every table that does not exist yet."""

    Base.metadata.create_all(engine)
    LOGGER.debug("Database schema ensured")


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Yield a session, committing on success and rolling back on error."""

    session: Session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
