"""
Answer recording.

An answer is accepted at most once per (session, question). The consume step
is a compare-and-set on the pool entry's ``is_used`` flag, committed in the
same transaction as the answer event and the session counter update, so two
concurrent submissions for one question cannot both succeed.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from quizarcade.models.orm import AnswerEvent, ArcadeSession, PoolEntry, utcnow
from quizarcade.services.bank import choice_labels
from quizarcade.services.errors import (
    AlreadyAnswered, InvalidChoice, InvalidTimeSpent, QuestionNotInPool, SessionNotActive,
)
from quizarcade.services.sequencer import load_session

logger = logging.getLogger(__name__)


@dataclass
class AnswerOutcome:
    is_correct: bool
    correct_label: str
    explanation: Optional[str]
    chosen_label: str


def normalize_label(label) -> str:
    return (label or "").strip().lower()


def _whole_seconds(value) -> bool:
    # bool is an int subclass but not a duration
    if value is None or isinstance(value, bool):
        return False
    try:
        return value >= 0 and value == int(value)
    except (TypeError, ValueError, OverflowError):
        return False


def record_answer(
    db: Session,
    session_id: int,
    question_id: int,
    chosen_label: str,
    time_spent_seconds: int = 0,
    owner_id: Optional[str] = None,
) -> AnswerOutcome:
    s = load_session(db, session_id, owner_id)
    entry = db.execute(
        select(PoolEntry).where(PoolEntry.session_id == s.id, PoolEntry.question_id == question_id)
    ).scalars().first()
    if entry is None:
        raise QuestionNotInPool(s.id, question_id)
    if entry.is_used:
        raise AlreadyAnswered(s.id, question_id)
    if not s.is_active:
        raise SessionNotActive(s.id)
    if not _whole_seconds(time_spent_seconds):
        raise InvalidTimeSpent(time_spent_seconds)

    question = entry.question
    chosen = normalize_label(chosen_label)
    valid = choice_labels(question)
    if chosen not in valid:
        raise InvalidChoice(chosen_label, valid)

    correct = normalize_label(question.correct_answer)
    is_correct = chosen == correct
    seconds = int(time_spent_seconds)

    try:
        consumed = db.execute(
            update(PoolEntry)
            .where(PoolEntry.id == entry.id, PoolEntry.is_used.is_(False))
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount != 1:
            db.rollback()
            logger.warning(f"Lost answer race for question {question_id} in session {s.id}")
            raise AlreadyAnswered(s.id, question_id)
        db.add(AnswerEvent(
            session_id=s.id, question_id=question_id, user_answer=chosen, correct_answer=correct,
            is_correct=is_correct, time_spent_seconds=seconds, answered_at=utcnow(),
        ))
        counted = db.execute(
            update(ArcadeSession)
            .where(ArcadeSession.id == s.id, ArcadeSession.is_active.is_(True))
            .values(
                questions_completed=ArcadeSession.questions_completed + 1,
                correct_answers=ArcadeSession.correct_answers + (1 if is_correct else 0),
                total_time_seconds=ArcadeSession.total_time_seconds + seconds,
            )
            .execution_options(synchronize_session=False)
        )
        if counted.rowcount != 1:
            # closed between the activity check and the consume step
            db.rollback()
            logger.warning(f"Session {s.id} closed before question {question_id} was recorded")
            raise SessionNotActive(s.id)
        db.commit()
    except (AlreadyAnswered, SessionNotActive):
        raise
    except Exception:
        db.rollback()
        logger.error(f"Failed to record answer for question {question_id} in session {s.id}", exc_info=True)
        raise

    logger.info(f"Session {s.id}: question {question_id} answered {'correctly' if is_correct else 'incorrectly'}")
    return AnswerOutcome(
        is_correct=is_correct,
        correct_label=question.correct_answer,
        explanation=question.explanation,
        chosen_label=chosen,
    )
