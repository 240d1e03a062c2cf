from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from contextlib import contextmanager

from .config import DATABASE_URL

# Import all models to ensure they are registered with SQLModel metadata
from .models import Task, TaskAssignment, User  # noqa: F401


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        return create_engine(url, echo=False, connect_args=connect_args, **kwargs)

    # Postgres: disable pooling for serverless and enable pre-ping
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
        **kwargs,
    )


engine = build_engine()

SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, class_=Session, expire_on_commit=False
)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_session():
    """Get a database session (context manager style).

    Usage:
        with get_session() as session:
            # do something with session
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_tables(bind: Engine = engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(bind=bind)
