"""
Database engine and session setup.

The links table lives in the main (transactional) database configured by
`settings.database_url`.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from expiring_links.config import settings

# SQLite needs check_same_thread=False because FastAPI may use the session
# from a different thread than the one that created it
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session per request and always close it"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
