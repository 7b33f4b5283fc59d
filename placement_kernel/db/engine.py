"""
Module: placement_kernel.db.engine
Responsibility: Build SQLAlchemy engines and create the schema.
Architecture position: Kernel > DB.  May import from db/base.py and the
    model registry; MUST NOT import from services/ or selectors/.

Invariants enforced:
    - In-memory SQLite shares a single connection (StaticPool) so every
      session of one WorkflowEngine sees the same database.  The workflow
      engine's lock supplies the mutual exclusion SQLite itself lacks, which
      is why ``check_same_thread`` is disabled.
    - File-backed and server databases get ``pool_pre_ping``.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from placement_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an isolated Engine for ``database_url``.

    Each WorkflowEngine owns its own database engine; nothing here is
    process-global.
    """
    options: dict = {"echo": echo}
    if make_url(database_url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            options["poolclass"] = StaticPool
    else:
        options["pool_pre_ping"] = True

    engine = create_engine(database_url, **options)
    logger.debug(
        "database_engine_built",
        extra={"dialect": engine.dialect.name, "in_memory": _is_memory_sqlite(database_url)},
    )
    return engine


def create_tables(engine: Engine) -> None:
    """
    Create every table that does not exist yet.

    Importing ``placement_kernel.models`` registers each ORM class on
    ``Base.metadata`` before ``create_all`` runs.
    """
    from placement_kernel.db.base import Base
    import placement_kernel.models  # noqa: F401

    Base.metadata.create_all(engine)

