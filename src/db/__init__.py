import logging
import os
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Optional
from uuid import uuid4

from alembic import command
from alembic.config import Config
from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from src.scheduling.srs import ScheduleState


LOGGER = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


class Subject(Base):
    """A study subject that groups topics."""

    __tablename__ = "study_subjects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    topics: Mapped[list["Topic"]] = relationship(
        "Topic",
        back_populates="subject",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Topic(Base):
    """A topic inside a subject; quiz questions belong to topics."""

    __tablename__ = "study_topics"
    __table_args__ = (Index("ix_study_topics_subject_id", "subject_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    subject_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("study_subjects.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[Optional["Subject"]] = relationship("Subject", back_populates="topics")
    schedules: Mapped[list["ReviewSchedule"]] = relationship(
        "ReviewSchedule",
        back_populates="topic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ReviewSchedule(Base):
    """Spaced-repetition state for one question or topic."""

    __tablename__ = "review_schedules"
    __table_args__ = (
        UniqueConstraint("item_type", "item_id", name="uq_review_schedules_item"),
        Index("ix_review_schedules_item_type_next_review_at", "item_type", "next_review_at"),
        Index("ix_review_schedules_subject_id", "subject_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    item_type: Mapped[str] = mapped_column(String(16), nullable=False)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    topic_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("study_topics.id", ondelete="CASCADE"), nullable=True
    )
    subject_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    correct_streak: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    last_review: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_review_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_result: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_confidence: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    last_room: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        server_onupdate=func.now(),
    )
    topic: Mapped[Optional["Topic"]] = relationship("Topic", back_populates="schedules")
    attempts: Mapped[list["ReviewAttempt"]] = relationship(
        "ReviewAttempt",
        back_populates="schedule",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_state(self) -> ScheduleState:
        """Return the values the next schedule calculation starts from."""
        return ScheduleState(
            repetitions=self.repetitions,
            interval_days=self.interval_days,
            ease_factor=self.ease_factor,
            correct_streak=self.correct_streak,
        )


class ReviewAttempt(Base):
    """History of attempts recorded against a review schedule."""

    __tablename__ = "review_attempts"
    __table_args__ = (
        UniqueConstraint("attempt_id", name="uq_review_attempts_attempt_id"),
        Index("ix_review_attempts_schedule_id_reviewed_at", "schedule_id", "reviewed_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    schedule_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("review_schedules.id", ondelete="CASCADE"), nullable=False
    )
    attempt_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    quality: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    room: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    difficulty: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    reviewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    schedule: Mapped["ReviewSchedule"] = relationship("ReviewSchedule", back_populates="attempts")


def _expand_database_url(raw_url: str) -> str:
    """Expand environment variables inside the configured database URL."""
    return os.path.expandvars(raw_url)


def get_database_url() -> str:
    """Return the configured database URL or raise if missing."""
    raw_url = os.getenv("DATABASE_URL")
    if not raw_url:
        raise RuntimeError("DATABASE_URL environment variable is required to connect to the database.")
    return _expand_database_url(raw_url)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create (and cache) the async engine for the application's database."""
    echo = os.getenv("SQLALCHEMY_ECHO", "false").lower() in {"1", "true", "yes"}
    return create_async_engine(get_database_url(), echo=echo)


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return a cached async session factory bound to the engine."""
    return async_sessionmaker(get_engine(), expire_on_commit=False)


def should_run_migrations() -> bool:
    """Determine whether migrations should be executed during startup."""
    flag = os.getenv("RUN_MIGRATIONS_ON_STARTUP", "true").lower()
    return flag in {"1", "true", "yes", "on"}


def _build_alembic_config() -> Config:
    project_root = Path(__file__).resolve().parents[2]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", get_database_url())
    return alembic_cfg


def run_migrations(target: str = "head") -> None:
    """Run Alembic migrations up to the specified target revision."""
    command.upgrade(_build_alembic_config(), target)


def run_migrations_if_needed(target: str = "head") -> None:
    """Run migrations when the startup flag is enabled."""
    if not should_run_migrations():
        LOGGER.info("Skipping migrations because RUN_MIGRATIONS_ON_STARTUP is disabled.")
        return

    LOGGER.info("Applying review schedule migrations up to %s.", target)
    run_migrations(target)
    LOGGER.info("Review schedule tables are up to date.")
