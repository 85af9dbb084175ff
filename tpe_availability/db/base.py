"""
SQLAlchemy engine, session factory and declarative base.
"""
import structlog
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from tpe_availability.core.config import settings
from tpe_availability.core.errors import PersistenceError

logger = structlog.get_logger(__name__)

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """FastAPI dependency — yields a session and always closes it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, operation: str) -> None:
    """
    Commit the unit of work or roll it back entirely.
    Store failures surface as PersistenceError; nothing stays half-written.
    """
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("persistence_failed", operation=operation, error=str(exc))
        raise PersistenceError(operation=operation, reason=exc.__class__.__name__) from exc


def commit_upsert(db: Session, write, operation: str) -> None:
    """
    Apply write() (query-then-insert/update) and commit.
    Two writers can both see a key as missing; the loser gets an IntegrityError,
    rolls back and replays write() once, which now updates the winner's rows.
    """
    write()
    try:
        db.commit()
        return
    except IntegrityError:
        db.rollback()
        logger.info("upsert_conflict_retry", operation=operation)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("persistence_failed", operation=operation, error=str(exc))
        raise PersistenceError(operation=operation, reason=exc.__class__.__name__) from exc
    write()
    commit_or_raise(db, operation=operation)
