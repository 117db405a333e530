# database.py
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker


logger = logging.getLogger(__name__)

Base = declarative_base()


class StoreOpenError(RuntimeError):
    pass


def build_sqlite_url(db_path: str) -> str:
    return f"sqlite:///{db_path}"


def _enable_transactional_ddl(engine: Engine) -> None:
    # pysqlite only opens a transaction implicitly before DML; DDL in a
    # migration step must still be inside the step's transaction.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def open_engine(db_path: str) -> Engine:
    """Create the store engine for ``db_path`` and check that it can be opened.

    Raises StoreOpenError when the path is empty or the database cannot be
    reached; callers treat that as fatal.
    """
    if not (db_path or "").strip():
        raise StoreOpenError("DB_PATH is not set.")

    engine = create_engine(
        build_sqlite_url(db_path),
        pool_pre_ping=True,
        future=True,
        connect_args={"check_same_thread": False},
    )
    _enable_transactional_ddl(engine)

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        engine.dispose()
        raise StoreOpenError(f"Couldn't get DB handle with path {db_path}: {exc}") from exc

    logger.info("Opened SQLite store at %s", db_path)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
