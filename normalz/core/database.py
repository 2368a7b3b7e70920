"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session factories (passed explicitly to the stores)
- Connection pooling with sane defaults
- SQLite support for local development and tests
- Table definitions for questions, tallies, vote receipts and player streaks
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import func

logger = logging.getLogger("normalz")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour


def build_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite URLs share a single connection (StaticPool) so in-memory
    databases survive across sessions; everything else gets a QueuePool.
    """
    if not database_url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Transactional scope around a series of operations.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Engine) -> None:
    """Create all tables defined in metadata. Existing tables are left alone."""
    metadata.create_all(bind=engine)


def drop_all_tables(engine: Engine) -> None:
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    metadata.drop_all(bind=engine)


def check_connection(engine: Optional[Engine]) -> bool:
    """Return True when a trivial query succeeds on the engine."""
    if engine is None:
        return False
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


questions = Table(
    'questions',
    metadata,
    Column('question_id', String(100), primary_key=True),
    Column('prompt', Text, nullable=True),
    Column('active', Boolean, nullable=False, server_default='1', index=True),
    Column('total_answers', Integer, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# One row per option; position keeps the authored order
question_options = Table(
    'question_options',
    metadata,
    Column('question_id', String(100), ForeignKey('questions.question_id'), nullable=False),
    Column('label', String(200), nullable=False),
    Column('position', Integer, nullable=False),
    Column('vote_count', Integer, nullable=False, server_default='0'),
    PrimaryKeyConstraint('question_id', 'label', name='pk_question_options'),
    UniqueConstraint('question_id', 'position', name='uq_question_options_position'),
)

# Applied submissions keyed by client idempotency token, scoped per question
vote_receipts = Table(
    'vote_receipts',
    metadata,
    Column('question_id', String(100), ForeignKey('questions.question_id'), nullable=False),
    Column('idempotency_key', String(255), nullable=False),
    Column('option', String(200), nullable=False),
    Column('answer_counts', JSON, nullable=False),
    Column('total_answers', Integer, nullable=False),
    Column('streak_recorded', Boolean, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    PrimaryKeyConstraint('question_id', 'idempotency_key', name='pk_vote_receipts'),
    Index('idx_vote_receipts_created', 'created_at'),
)

player_streaks = Table(
    'player_streaks',
    metadata,
    Column('player_id', String(100), primary_key=True),
    Column('current_streak', Integer, nullable=False, server_default='0'),
    Column('all_time_high', Integer, nullable=False, server_default='0'),
    Column('daily_high', Integer, nullable=False, server_default='0'),
    Column('weekly_high', Integer, nullable=False, server_default='0'),
    Column('last_daily_reset', DateTime(timezone=True), nullable=True),
    Column('last_weekly_reset', DateTime(timezone=True), nullable=True),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)
