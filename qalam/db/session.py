import logging
import time
import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2 import sql
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from fastapi import Request

from qalam.core.config import settings
from qalam.db.base import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and session factory for one application instance.

    Handed to the app at startup and reached by request handlers through
    ``get_db``; nothing reads a module-level engine.
    """

    def __init__(self, url: str, **engine_kwargs):
        if url.startswith("sqlite"):
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            engine_kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
            engine_kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
            engine_kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
        engine_kwargs.setdefault("pool_pre_ping", True)

        self.url = url
        self.engine = create_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            # ON DELETE CASCADE is off by default in SQLite
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def ensure_database(self) -> None:
        """Create the PostgreSQL database named in the url if it is missing."""
        url = self.engine.url
        if url.get_backend_name() != "postgresql" or not url.database:
            return
        try:
            conn = psycopg2.connect(
                dbname="postgres",
                user=url.username,
                password=url.password,
                host=url.host,
                port=url.port or 5432,
            )
            conn.autocommit = True
            cur = conn.cursor()
            cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(url.database)))
            cur.close()
            conn.close()
            logger.info(f"Created database {url.database}")
        except pg_errors.DuplicateDatabase:
            pass
        except psycopg2.Error as e:
            # connect() below reports the real failure
            logger.warning(f"Could not create database {url.database}: {e}")

    def connect(self, retries: int | None = None, backoff: float | None = None) -> None:
        """Probe the database, retrying with exponential backoff."""
        retries = settings.DB_CONNECT_RETRIES if retries is None else retries
        backoff = settings.DB_CONNECT_BACKOFF if backoff is None else backoff

        attempt = 0
        while True:
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info(f"Database connected ({self.engine.dialect.name})")
                return
            except OperationalError as e:
                attempt += 1
                if attempt > retries:
                    logger.error(f"Database connection failed after {attempt} attempts: {e}")
                    raise
                delay = backoff * (2 ** (attempt - 1))
                logger.warning(f"Database connection failed (attempt {attempt}), retrying in {delay:.1f}s")
                time.sleep(delay)

    def create_all(self) -> None:
        # Import all models here so their tables are registered
        from qalam.db.models.user import User  # noqa: F401
        from qalam.db.models.post import Post  # noqa: F401
        from qalam.db.models.like import Like  # noqa: F401
        from qalam.db.models.post_view import PostView  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def is_healthy(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except OperationalError:
            return False

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.db.SessionLocal()
    try:
        yield db
    finally:
        db.close()
