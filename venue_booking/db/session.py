# venue_booking/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from venue_booking.core.config import settings


def make_engine(url: str):
    """
    Engine for ``url``. SQLite connections are shared across the threadpool
    FastAPI runs sync endpoints on, and wait on the file lock instead of
    failing immediately when another writer holds it.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url, connect_args={"check_same_thread": False, "timeout": 30}
        )
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
