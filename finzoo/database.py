# finzoo/database.py
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from finzoo.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients; SQLAlchemy's
# default pool_size of 5+ per process quickly hits
#   "MaxClientsInSessionMode: max clients reached"
#
# The inventory refresh and inactivity sweep run in worker threads
# alongside requests, so the pool gets one overflow slot for them.
# ---------------------------------------------------------

db_url = settings.DATABASE_URL

if db_url.startswith("postgres"):
    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    engine = create_engine(
        db_url,
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=1,
    )
elif db_url in ("sqlite://", "sqlite:///:memory:"):
    # In-memory SQLite (tests): one shared connection across threads
    engine = create_engine(
        db_url,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    # Local development against SQLite
    engine = create_engine(
        db_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def new_session() -> Session:
    """
    Open a standalone session for long-lived services (inventory cache,
    inactivity monitor) that live outside a single request.
    """
    return Session(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
