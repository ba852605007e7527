import logging
import math
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import Column, Integer, MetaData, Numeric, String, Table, Text, create_engine
from sqlalchemy.dialects.mysql import LONGTEXT
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from .errors import LockTimeoutError, StorageError, StoreError, TransactionError

logger = logging.getLogger(__name__)

# This file holds the relational schema and the store handle shared by requests.

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("prod_id", Integer, primary_key=True, autoincrement=True),
    Column("prod_name", String(255), nullable=False),
    Column("prod_price", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("prod_quan", Integer, nullable=False, default=0),
    Column("prod_code", String(64), nullable=False),
    Column("prod_img", Text().with_variant(LONGTEXT(), "mysql"), nullable=True),
)


def _engine_for(url) -> Engine:
    url = make_url(url)
    kwargs = {"future": True, "pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        database = url.database
        if database and database != ":memory:":
            # sqlite needs the parent directory to exist before the first connect
            Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


# pysqlite opens connections with a 5s busy timeout
_SQLITE_DEFAULT_BUSY_MS = 5000
# 1205: innodb lock wait timeout, 3024: max_execution_time exceeded
_MYSQL_TIMEOUT_CODES = {1205, 3024}


def _set_lock_timeout(conn: Connection, seconds: float) -> None:
    dialect = conn.dialect.name
    if dialect == "sqlite":
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {max(1, int(seconds * 1000))}")
    elif dialect == "mysql":
        # innodb only accepts whole seconds
        conn.exec_driver_sql(f"SET SESSION innodb_lock_wait_timeout = {max(1, math.ceil(seconds))}")
        conn.exec_driver_sql(f"SET SESSION max_execution_time = {max(1, int(seconds * 1000))}")


def _reset_lock_timeout(conn: Connection) -> None:
    dialect = conn.dialect.name
    if dialect == "sqlite":
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {_SQLITE_DEFAULT_BUSY_MS}")
    elif dialect == "mysql":
        conn.exec_driver_sql("SET SESSION innodb_lock_wait_timeout = DEFAULT")
        conn.exec_driver_sql("SET SESSION max_execution_time = DEFAULT")
    if conn.in_transaction():
        conn.rollback()


def _is_lock_timeout(exc: BaseException) -> bool:
    if not isinstance(exc, OperationalError):
        return False
    orig = exc.orig
    code = orig.args[0] if getattr(orig, "args", None) else None
    return code in _MYSQL_TIMEOUT_CODES or "database is locked" in str(orig)


class Database:
    """
    Store handle: one engine (and its connection pool) per process.

    Created explicitly at startup and passed to every component that talks to
    the store; `dispose()` releases the pool on shutdown.
    """

    def __init__(self, url):
        self.engine = _engine_for(url)

    def create_schema(self) -> None:
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create schema: {exc}") from exc

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def transaction(self, lock_timeout: Optional[float] = None) -> Iterator[Connection]:
        """
        Yield a connection inside one database transaction.

        Commits when the block exits normally and rolls back on any other
        exit. Driver errors raised inside the block surface as StorageError
        (LockTimeoutError when a lock wait gave up); a failed commit or
        rollback surfaces as TransactionError.

        `lock_timeout` bounds, in seconds, how long any statement of this
        transaction waits for a lock held by another transaction.
        """
        try:
            conn = self.engine.connect()
            trans = conn.begin()
            if lock_timeout is not None:
                _set_lock_timeout(conn, lock_timeout)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not open a transaction: {exc}") from exc

        try:
            try:
                yield conn
            except BaseException as exc:
                try:
                    trans.rollback()
                except SQLAlchemyError as rollback_exc:
                    logger.critical("Rollback failed: %s", rollback_exc)
                    raise TransactionError(f"Rollback failed: {rollback_exc}") from rollback_exc
                if _is_lock_timeout(exc):
                    raise LockTimeoutError(f"Gave up waiting for a lock: {exc}") from exc
                if isinstance(exc, SQLAlchemyError):
                    raise StorageError(f"Store query failed: {exc}") from exc
                raise
            try:
                trans.commit()
            except SQLAlchemyError as exc:
                raise TransactionError(f"Commit failed: {exc}") from exc
        finally:
            if lock_timeout is not None:
                try:
                    _reset_lock_timeout(conn)
                except SQLAlchemyError as exc:
                    # never hand a connection with a shortened lock wait back to the pool
                    logger.warning("Discarding connection, lock timeout reset failed: %s", exc)
                    conn.invalidate()
            conn.close()

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Yield a connection for read-only work."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except StoreError:
            raise
        except SQLAlchemyError as exc:
            raise StorageError(f"Store query failed: {exc}") from exc
