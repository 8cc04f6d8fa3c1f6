"""SQLAlchemy database models for the Noteboard MCP server."""
import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Float, String, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from noteboard.config import config
from noteboard.models.schema import MAX_AUTHOR_LENGTH, MAX_TEXT_LENGTH, NoteColor

# Create base class for SQLAlchemy models
Base = declarative_base()


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(String(64), primary_key=True, index=True)
    text = Column(String(MAX_TEXT_LENGTH), nullable=False)
    author = Column(String(MAX_AUTHOR_LENGTH), nullable=False)
    x = Column(Float, nullable=False, default=0.0)
    y = Column(Float, nullable=False, default=0.0)
    rotation = Column(Float, nullable=False, default=0.0)
    color = Column(String(20), nullable=False, default=NoteColor.YELLOW.value)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id='{self.id}', author='{self.author}', x={self.x}, y={self.y})>"


def init_db(db_url: Optional[str] = None) -> Engine:
    """Create the engine and the ``notes`` table.

    File databases get WAL journaling and a small connection pool;
    in-memory databases use a single shared connection so every thread
    sees the same data.
    """
    url = db_url or config.get_db_url()
    if ":memory:" in url:
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=5,
            pool_timeout=30,
            pool_pre_ping=True,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            # WAL mode: writes go to separate journal, preventing corruption on crash
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to ``engine``."""
    return sessionmaker(bind=engine, expire_on_commit=False)
