"""SQLite engine setup, transaction modes and one-time initialization.

pysqlite's own transaction handling never emits ``BEGIN EXCLUSIVE`` and
defers ``BEGIN`` until the first DML statement. Driver-level transaction
control is therefore switched off on every connection and the ``begin``
event emits the statement itself, with the mode taken from the
``BEGIN_MODE_OPTION`` execution option (``DEFERRED`` when unset).
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, create_engine, event, insert, select
from sqlalchemy.exc import OperationalError

from yakstack.models import (
    DEFAULT_STACK_ID,
    DEFAULT_STACK_NAME,
    AppState,
    Base,
    Stack,
)
from yakstack.settings import Settings

BEGIN_MODE_OPTION = "yakstack_begin_mode"
EXCLUSIVE = {BEGIN_MODE_OPTION: "EXCLUSIVE"}


def create_store_engine(settings: Settings) -> Engine:
    db_path = Path(settings.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    # The rollback journal stays in its default mode: under WAL an exclusive
    # transaction would no longer keep readers out.
    engine = create_engine(
        f"sqlite:///{db_path.as_posix()}",
        echo=False,
        connect_args={"timeout": settings.busy_timeout_seconds},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        mode = conn.get_execution_options().get(BEGIN_MODE_OPTION, "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")

    logger.debug("Store engine created", db_path=db_path.as_posix())
    return engine


def exclusive(engine: Engine) -> Engine:
    """Engine view whose transactions start with ``BEGIN EXCLUSIVE``."""
    return engine.execution_options(**EXCLUSIVE)


def is_db_initialized(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            return conn.execute(select(AppState.stack_id)).first() is not None
    except OperationalError:
        return False


def init_db(engine: Engine) -> bool:
    """Create the schema, the default stack and the app state row if missing.

    Returns True when this call performed the initialization. Runs under an
    exclusive lock so two first-time invocations cannot both seed the store.
    """
    if is_db_initialized(engine):
        return False

    with exclusive(engine).begin() as conn:
        Base.metadata.create_all(conn)
        if conn.execute(select(AppState.stack_id)).first() is not None:
            return False
        if conn.execute(select(Stack.id).where(Stack.id == DEFAULT_STACK_ID)).first() is None:
            conn.execute(insert(Stack).values(id=DEFAULT_STACK_ID, name=DEFAULT_STACK_NAME))
        conn.execute(insert(AppState).values(id=1, stack_id=DEFAULT_STACK_ID))

    logger.info("Store initialized", url=str(engine.url))
    return True
