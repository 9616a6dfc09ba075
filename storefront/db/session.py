from contextlib import contextmanager
import os
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ..models import Base


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/app.db")

# Ensure sqlite file parent directory exists to avoid 'unable to open database file'
if DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.split("sqlite:///")[-1]
    Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(DATABASE_URL, future=True)


def make_session_factory(bind):
    """Build a commit-or-rollback session context manager bound to ``bind``."""
    maker = sessionmaker(bind=bind, autoflush=False, expire_on_commit=False, future=True)

    @contextmanager
    def _session():
        session = maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _session


get_session = make_session_factory(engine)


def init_db(bind=engine) -> None:
    Base.metadata.create_all(bind)
