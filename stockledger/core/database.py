"""
Stockledger Database Configuration
SQLAlchemy engine, sessions and transaction boundaries
"""
from contextlib import contextmanager
from typing import Callable, Generator, Iterator, Optional, TypeVar
import logging
import time

from sqlalchemy import BigInteger, Integer, MetaData, create_engine, text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from .config import settings
from .exceptions import StorageContention

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_engine(database_url: str, echo: bool = False):
    """Create an engine with pooling suited to the backing store"""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,
        echo=echo,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for models, with a naming convention for constraints
Base = declarative_base(metadata=MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}))

# 64-bit identifiers; SQLite only autoincrements INTEGER primary keys
IdType = BigInteger().with_variant(Integer, "sqlite")


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a block as one atomic unit of work.

    Commits when the block finishes, rolls back on any error. Lock
    contention and unique-key races surface as StorageContention, the only
    failure class a caller may retry.
    """
    try:
        yield db
        db.commit()
    except (OperationalError, IntegrityError) as e:
        db.rollback()
        logger.warning(f"Transaction aborted by storage contention: {e.orig}")
        raise StorageContention(str(e.orig)) from e
    except Exception:
        db.rollback()
        raise


def run_with_retry(
    operation: Callable[[], T],
    attempts: Optional[int] = None,
    backoff_seconds: Optional[float] = None,
) -> T:
    """
    Call operation, retrying only on StorageContention with linear backoff.

    Business-rule failures (InsufficientStock and friends) propagate on the
    first attempt.
    """
    attempts = attempts or settings.STORAGE_RETRY_ATTEMPTS
    backoff = settings.STORAGE_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except StorageContention:
            if attempt == attempts:
                raise
            logger.info(f"Retrying after storage contention (attempt {attempt}/{attempts})")
            time.sleep(backoff * attempt)


def init_db(bind=None):
    """
    Initialize database tables

    This function creates all tables defined in models
    """
    try:
        # Import all models to ensure they are registered with Base
        from stockledger import models  # noqa: F401

        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def check_db_connection() -> bool:
    """
    Check if database connection is working

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
