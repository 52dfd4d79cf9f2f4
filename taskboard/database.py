import logging

from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from .config import DATABASE_URL

# Import all models to ensure they are registered with SQLModel metadata
from .models import ChecklistItem, Subtask, Task, TimeEntry, User  # noqa: F401

logger = logging.getLogger(__name__)


def build_engine(url: str = DATABASE_URL) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Keep a single connection so every session sees the same in-memory database
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)

    # Hosted Postgres: disable pooling for serverless and enable pre-ping
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine = None):
    """Create all database tables."""
    bind = bind or engine
    SQLModel.metadata.create_all(bind=bind)
    logger.info("Database tables ready url=%s", bind.url.render_as_string(hide_password=True))
