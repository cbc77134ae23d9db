"""Key/value persistence for the stats ledger (SQLite via SQLAlchemy 2.0)."""

from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Protocol

from sqlalchemy import DateTime, String, Text, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import settings


class KeyValueBackend(Protocol):
    """Narrow storage interface: one string value per key."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def clear(self, key: str) -> None:
        ...


# Declarative base
class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class KeyValueEntry(Base):
    """A single persisted value."""

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry(key={self.key!r}, updated_at={self.updated_at})>"


class SQLiteKeyValueBackend:
    """
    Durable key/value store backed by a SQL database.

    Errors are not handled here; StatsStore decides what is best-effort.
    """

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize the engine and create the table.

        Args:
            database_url: Database URL. If None, uses settings.DATABASE_URL
        """
        url = database_url or settings.DATABASE_URL

        # Create engine with appropriate settings
        connect_args = {}
        poolclass = None

        if url.startswith("sqlite"):
            # SQLite-specific settings
            connect_args = {"check_same_thread": False}
            if ":memory:" in url:
                poolclass = StaticPool
            else:
                db_path = make_url(url).database
                if db_path:
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            url,
            connect_args=connect_args,
            poolclass=poolclass,
            echo=False,  # Set to True for SQL debugging
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        Base.metadata.create_all(bind=self.engine)

    def get(self, key: str) -> Optional[str]:
        with self.SessionLocal() as db:
            return db.execute(
                select(KeyValueEntry.value).where(KeyValueEntry.key == key)
            ).scalar_one_or_none()

    def set(self, key: str, value: str) -> None:
        with self.SessionLocal() as db:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                db.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()

    def clear(self, key: str) -> None:
        with self.SessionLocal() as db:
            entry = db.get(KeyValueEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()

    def dispose(self) -> None:
        self.engine.dispose()


class InMemoryKeyValueBackend:
    """Process-local backend for tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def clear(self, key: str) -> None:
        self.data.pop(key, None)
