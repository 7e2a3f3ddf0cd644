"""
Session lifecycle: creation with its question pool, serving the next
unanswered question, and completion.
"""
import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from quizarcade.models.orm import ArcadeSession, PoolEntry, Question, utcnow
from quizarcade.services import bank
from quizarcade.services.analytics import percent
from quizarcade.services.errors import EmptySelection, SessionNotActive, SessionNotFound
from quizarcade.services.pool import generate_pool

logger = logging.getLogger(__name__)


class _Complete:
    """Signal returned once a session's pool is exhausted."""

    def __repr__(self) -> str:
        return "COMPLETE"


COMPLETE = _Complete()


@dataclass
class Progress:
    current: int
    total: int
    correct_answers: int
    percentage: int


@dataclass
class NextQuestion:
    question: Question
    position: int
    progress: Progress


def load_session(db: Session, session_id: int, owner_id: Optional[str] = None) -> ArcadeSession:
    """Fetch a session, hiding sessions that belong to another owner."""
    s = db.get(ArcadeSession, session_id)
    if s is None or (owner_id is not None and s.user_id != owner_id):
        raise SessionNotFound(session_id)
    return s


def create_session(
    db: Session,
    owner_id: str,
    mode: bank.SelectionMode = "all",
    chapters: Optional[List[str]] = None,
    question_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
    incorrect_only: bool = False,
) -> ArcadeSession:
    """
    Create a session and its randomized pool in a single transaction.

    Raises EmptySelection, before anything is written, when the selection
    matches no questions.
    """
    if question_count is not None and question_count < 1:
        raise EmptySelection("question_count must be at least 1")
    ids = bank.select_question_ids(db, mode, chapters, question_count, rng,
                                   owner_id=owner_id, incorrect_only=incorrect_only)
    entries = generate_pool(None, ids, rng)

    s = ArcadeSession(
        user_id=owner_id, mode=mode, chapters=list(chapters or []),
        total_questions=len(entries), questions_completed=0, correct_answers=0,
        total_time_seconds=0, is_active=True, started_at=utcnow(),
    )
    s.pool = entries
    db.add(s)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(s)
    logger.info(f"New session {s.id} for {owner_id} [mode={mode}, questions={s.total_questions}]")
    return s


def _complete(db: Session, s: ArcadeSession) -> None:
    # guarded on is_active so completed_at is written once
    res = db.execute(
        update(ArcadeSession)
        .where(ArcadeSession.id == s.id, ArcadeSession.is_active.is_(True))
        .values(is_active=False, completed_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    if res.rowcount:
        logger.info(f"Session {s.id} complete")
    db.refresh(s)


def next_entry(db: Session, session_id: int) -> Optional[PoolEntry]:
    return db.execute(
        select(PoolEntry)
        .where(PoolEntry.session_id == session_id, PoolEntry.is_used.is_(False))
        .order_by(PoolEntry.position)
        .limit(1)
    ).scalars().first()


def peek_next(db: Session, session_id: int, owner_id: Optional[str] = None) -> Union[NextQuestion, _Complete]:
    """
    Return the unconsumed question with the lowest position, or COMPLETE.

    Peeking does not consume anything; repeated calls return the same question
    until it is answered. The first call that finds the pool exhausted closes
    the session; later calls return COMPLETE without changing it.
    """
    s = load_session(db, session_id, owner_id)
    entry = next_entry(db, s.id)
    if entry is None:
        if s.is_active:
            _complete(db, s)
        return COMPLETE
    if not s.is_active:
        raise SessionNotActive(s.id)
    progress = Progress(
        current=s.questions_completed + 1,
        total=s.total_questions,
        correct_answers=s.correct_answers,
        percentage=percent(s.questions_completed, s.total_questions),
    )
    return NextQuestion(question=entry.question, position=entry.position, progress=progress)


def end_session(db: Session, session_id: int, owner_id: Optional[str] = None) -> ArcadeSession:
    """Soft-close a session before its pool is exhausted. Idempotent."""
    s = load_session(db, session_id, owner_id)
    if s.is_active:
        _complete(db, s)
        logger.info(f"Session {s.id} ended early at {s.questions_completed}/{s.total_questions}")
    return s


def get_active_session(db: Session, owner_id: str) -> Optional[ArcadeSession]:
    return db.execute(
        select(ArcadeSession)
        .where(ArcadeSession.user_id == owner_id, ArcadeSession.is_active.is_(True))
        .order_by(ArcadeSession.started_at.desc(), ArcadeSession.id.desc())
        .limit(1)
    ).scalars().first()


def list_sessions(db: Session, owner_id: str) -> List[ArcadeSession]:
    return list(db.execute(
        select(ArcadeSession)
        .where(ArcadeSession.user_id == owner_id)
        .order_by(ArcadeSession.started_at.desc(), ArcadeSession.id.desc())
    ).scalars().all())
