from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.event import listen
import logging

# Ensure models are imported so SQLModel metadata is populated
from ..models import user as _user_models  # noqa: F401
from ..models import purchase as _purchase_models  # noqa: F401
from ..models import affiliate as _affiliate_models  # noqa: F401
from ..models import subscription as _subscription_models  # noqa: F401
from ..models import admin_log as _admin_log_models  # noqa: F401
from ..models import webhook_event as _webhook_event_models  # noqa: F401
from .config import settings

log = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        # Return connections to the pool with no open transaction
        "pool_reset_on_return": "rollback",
    }


def _create_engine(url: str):
    parsed = make_url(url)
    log.info(
        "[db] Creating engine (driver=%s, host=%s, database=%s)",
        parsed.drivername,
        parsed.host,
        parsed.database,
    )
    new_engine = create_engine(url, **_engine_kwargs(url))
    listen(new_engine.pool, "invalidate", _handle_invalidate)
    return new_engine


def _handle_invalidate(dbapi_connection, connection_record, exception):
    log.warning("[db] Connection invalidated: %s", exception)


engine = _create_engine(settings.DATABASE_URL)


def create_db_and_tables():
    """Create all tables from SQLModel metadata."""
    SQLModel.metadata.create_all(engine)


def dispose_engine() -> None:
    engine.dispose()
    log.info("[db] Engine disposed")


def check_database() -> bool:
    """Return True when a trivial query succeeds."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        log.error("[db] Health check failed: %s", exc)
        return False


def get_session():
    """Provide a database session for FastAPI dependency injection.

    expire_on_commit=False keeps attributes readable after a commit, so handlers
    can serialize the rows they just wrote.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

