from sqlmodel import SQLModel, create_engine
from sqlalchemy.pool import NullPool, StaticPool

from .config import DATABASE_URL, SQL_ECHO
from .store import EntityStore, SqlEntityStore

# Import all models to ensure they are registered with SQLModel metadata
from .models import Task, User  # noqa: F401


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _create_engine(url: str = DATABASE_URL):
    if url.startswith("sqlite"):
        if _is_memory_sqlite(url):
            # One shared connection, otherwise every session sees an empty database.
            return create_engine(
                url,
                echo=SQL_ECHO,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            url,
            echo=SQL_ECHO,
            connect_args={"check_same_thread": False},
        )

    # Postgres and friends: disable pooling for serverless and enable pre-ping
    return create_engine(
        url,
        echo=SQL_ECHO,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


engine = _create_engine()

store = SqlEntityStore(engine)


def get_store() -> EntityStore:
    """Dependency to get the entity store."""
    return store


def create_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(bind=engine)


def drop_tables():
    """Drop all database tables."""
    SQLModel.metadata.drop_all(bind=engine)
