"""SQLAlchemy database models for the NoteTree server."""

from typing import Optional

from sqlalchemy import (Column, DateTime, Integer, String, Text,
                        UniqueConstraint, create_engine, event)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from notetree.config import config
from notetree.models.schema import utc_now

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBFolder(Base):
    """Database model for a folder.

    Folders are stored flat; the hierarchy lives in ``parent_path``.
    """
    __tablename__ = "folders"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    parent_path = Column(Text, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("parent_path", "name", name="unique_folder_in_parent"),
    )

    def __repr__(self) -> str:
        """Return string representation of folder."""
        return f"<Folder(parent_path='{self.parent_path}', name='{self.name}')>"


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    directory = Column(Text, nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("directory", "name", name="unique_note_in_directory"),
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(directory='{self.directory}', name='{self.name}')>"


def init_db(db_url: Optional[str] = None, in_memory: Optional[bool] = None):
    """Initialize the database and return the engine.

    File databases get SQLite's crash-resilience settings:
    - WAL (Write-Ahead Logging) mode for atomic writes
    - NORMAL synchronous mode
    - QueuePool for connection reuse with size limits
    - Pool pre-ping to detect stale connections
    - A busy timeout so concurrent writers wait instead of failing

    In-memory databases share one connection across threads (StaticPool),
    otherwise every connection would see its own empty database.

    Args:
        db_url: SQLAlchemy URL. Defaults to ``config.get_db_url()``.
        in_memory: Force an in-memory database. Defaults to ``config.in_memory_db``.
    """
    if in_memory is None:
        in_memory = config.in_memory_db and db_url is None

    if in_memory:
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        # SQLite is single-writer, so a small pool is ideal
        engine = create_engine(
            db_url or config.get_db_url(),
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=3600,
            pool_pre_ping=True,
            connect_args={"timeout": 30, "check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine=None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine, expire_on_commit=False)
