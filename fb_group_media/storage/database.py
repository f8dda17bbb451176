"""SQLite engine for the request queue and the dataset."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base
from ..config import config

_engine = None
_SessionLocal = None


def init_db(db_path: Optional[Path] = None) -> None:
    """Open (or create) the crawl database at `db_path`, default `DATABASE_PATH`."""
    global _engine, _SessionLocal

    db_path = Path(db_path or config.database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    # Page visits run on the event loop thread, the scheduler may call from another
    _engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(_engine)
    _SessionLocal = sessionmaker(bind=_engine, autoflush=False)


def get_session() -> Session:
    """New session on the crawl database, opening it on first use."""
    if _SessionLocal is None:
        init_db()
    return _SessionLocal()


@contextmanager
def session_scope(session_factory=None) -> Generator[Session, None, None]:
    """Commit on success, roll back on error, always close.

        with session_scope() as session:
            session.add(item)
    """
    session = (session_factory or get_session)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
