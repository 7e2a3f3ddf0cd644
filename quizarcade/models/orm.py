from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy import (
    BigInteger, Integer, String, Text, Boolean, DateTime, JSON,
    ForeignKey, UniqueConstraint, Index, CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

CHOICE_LABELS = ("a", "b", "c", "d")

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Base(DeclarativeBase): pass

# ========== Question Bank ==========

class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("idx_questions_chapter", "chapter"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    chapter: Mapped[str] = mapped_column(String(255), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    choice_a: Mapped[Optional[str]] = mapped_column(Text)
    choice_b: Mapped[Optional[str]] = mapped_column(Text)
    choice_c: Mapped[Optional[str]] = mapped_column(Text)
    choice_d: Mapped[Optional[str]] = mapped_column(Text)
    correct_answer: Mapped[str] = mapped_column(String(1), nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def choices(self) -> dict:
        """Non-empty choices keyed by lower-case label."""
        out = {}
        for label in CHOICE_LABELS:
            text = getattr(self, f"choice_{label}")
            if text is not None and text.strip():
                out[label] = text
        return out

# ========== Delivery Models ==========

class ArcadeSession(Base):
    __tablename__ = "arcade_sessions"
    __table_args__ = (
        Index("idx_as_user_active", "user_id", "is_active"),
        Index("idx_as_started", "started_at"),
        CheckConstraint("questions_completed >= 0 AND questions_completed <= total_questions", name="ck_as_completed"),
        CheckConstraint("correct_answers >= 0 AND correct_answers <= questions_completed", name="ck_as_correct"),
        CheckConstraint("total_time_seconds >= 0", name="ck_as_time"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False, default="all")
    chapters: Mapped[List[str]] = mapped_column(JSON, default=list)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    questions_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_time_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    pool: Mapped[List["PoolEntry"]] = relationship(
        back_populates="session", cascade="all, delete-orphan", passive_deletes=True
    )
    answers: Mapped[List["AnswerEvent"]] = relationship(
        back_populates="session", cascade="all, delete-orphan", passive_deletes=True
    )

class PoolEntry(Base):
    __tablename__ = "arcade_question_pool"
    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_pool_question"),
        UniqueConstraint("session_id", "position", name="uq_pool_position"),
        Index("idx_pool_next", "session_id", "is_used", "position"),
        CheckConstraint("position >= 1", name="ck_pool_position"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("arcade_sessions.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("questions.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    session: Mapped["ArcadeSession"] = relationship(back_populates="pool")
    question: Mapped["Question"] = relationship()

class AnswerEvent(Base):
    __tablename__ = "arcade_answers"
    __table_args__ = (
        Index("idx_answers_session", "session_id", "answered_at"),
        CheckConstraint("time_spent_seconds >= 0", name="ck_answer_time"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("arcade_sessions.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("questions.id"), nullable=False)
    user_answer: Mapped[str] = mapped_column(String(1), nullable=False)
    correct_answer: Mapped[str] = mapped_column(String(1), nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    answered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    session: Mapped["ArcadeSession"] = relationship(back_populates="answers")
    question: Mapped["Question"] = relationship()
