# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- Database engine configuration (MS SQL Server by default, SQLite for tests)
- Session factory for dependency injection
- Connection health check

Usage:
     from database import get_session, engine

     # In FastAPI routes:
     @router.get("/items")
     def get_items(db: Session = Depends(get_session)):
          return db.query(Item).all()
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
     if url.startswith("sqlite"):
          # Single shared connection so in-memory databases survive across sessions/threads
          return {
               "connect_args": {"check_same_thread": False},
               "poolclass": StaticPool,
          }
     return {
          "poolclass": QueuePool,
          "pool_size": 5,
          "max_overflow": 10,
          "pool_timeout": 30,
          "pool_recycle": 1800,  # Recycle connections after 30 minutes
     }


engine = create_engine(DATABASE_URL, echo=SQL_ECHO, **_engine_options(DATABASE_URL))

# Session factory
SessionLocal = sessionmaker(
     bind=engine,
     autocommit=False,
     autoflush=False,
     expire_on_commit=False,
)


def get_session() -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     Commits when the request handler returns normally, rolls back on error.

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
     """
     Context manager for database sessions (for use outside FastAPI routes).

     Usage:
          with get_session_context() as db:
               entries = db.query(LedgerTransaction).all()
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


def check_connection() -> bool:
     """Return True if the database answers a trivial query."""
     try:
          with engine.connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except SQLAlchemyError:
          logger.exception("Database connection failed")
          return False
