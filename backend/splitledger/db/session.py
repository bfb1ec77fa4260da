"""
Database session management.
"""
import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError as OrmStaleDataError
from splitledger.core.config import settings
from splitledger.core.exceptions import StaleDataError
from splitledger.db.base import Base

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    pool_recycle=3600
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Run a block as one atomic unit: commit on success, roll back on any error.
    A version conflict detected by the ORM surfaces as the ledger's StaleDataError.
    """
    try:
        yield db
        db.commit()
    except OrmStaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent modification detected: {e}")
        raise StaleDataError("Record was modified by another request; re-fetch and retry") from e
    except Exception:
        db.rollback()
        raise


def init_db():
    """Initialize database tables."""
    import splitledger.models  # noqa: F401  (register mappers)
    Base.metadata.create_all(bind=engine)
