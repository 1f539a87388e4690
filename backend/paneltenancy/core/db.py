# Database wiring shared by the whole service. The engine points at the
# central database; connection-switched panels route tenant-scoped models
# elsewhere through TenantSession.get_bind.

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from paneltenancy.core.config import settings
from paneltenancy.tenancy.scoping import TenantSession


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def make_engine(url: str) -> Engine:
    return create_engine(
        url,
        echo=settings.DB_ECHO,
        connect_args=_connect_args(url),
        future=True,
    )


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Tenant deletion relies on ON DELETE CASCADE; SQLite ignores it unless asked.
    module = type(dbapi_connection).__module__
    if not module.startswith("sqlite3"):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(
    bind=engine,
    class_=TenantSession,
    autoflush=False,
    autocommit=False,
    future=True,
)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
