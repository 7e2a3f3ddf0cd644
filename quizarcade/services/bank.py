"""
Question bank: read-only catalog lookups, selection rules and bulk import.
"""
import logging
import random
from typing import Dict, Iterable, List, Literal, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quizarcade.models.orm import CHOICE_LABELS, AnswerEvent, ArcadeSession, Question
from quizarcade.services.errors import EmptySelection, InvalidQuestion

logger = logging.getLogger(__name__)

SelectionMode = Literal["all", "by_chapter", "review"]


def choice_labels(question: Question) -> List[str]:
    return list(question.choices().keys())


def get_question(db: Session, question_id: int) -> Optional[Question]:
    return db.get(Question, question_id)


def get_questions(db: Session, question_ids: Iterable[int]) -> Dict[int, Question]:
    ids = list(question_ids)
    if not ids:
        return {}
    rows = db.execute(select(Question).where(Question.id.in_(ids))).scalars().all()
    return {q.id: q for q in rows}


def list_chapters(db: Session) -> List[Dict]:
    """Distinct chapters with their question counts, sorted by name."""
    rows = db.execute(
        select(Question.chapter, func.count(Question.id))
        .group_by(Question.chapter)
        .order_by(Question.chapter)
    ).all()
    return [{"name": name, "question_count": count} for name, count in rows]


def select_question_ids(
    db: Session,
    mode: SelectionMode = "all",
    chapters: Optional[List[str]] = None,
    question_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
    owner_id: Optional[str] = None,
    incorrect_only: bool = False,
) -> Set[int]:
    """
    Apply a selection rule to the bank.

    ``all`` takes every question, ``by_chapter`` restricts to ``chapters``.
    ``review`` takes the questions ``owner_id`` has answered in any earlier
    session (only the missed ones with ``incorrect_only``), further narrowed
    to ``chapters`` when some are given.
    When ``question_count`` is given, a uniform random subset of that size
    is drawn from the matches.
    """
    stmt = select(Question.id)
    if mode == "by_chapter":
        if not chapters:
            raise EmptySelection("Chapter selection requires at least one chapter")
        stmt = stmt.where(Question.chapter.in_(chapters))
    elif mode == "review":
        if owner_id is None:
            raise EmptySelection("Review selection requires an owner")
        history = (
            select(AnswerEvent.question_id)
            .join(ArcadeSession, ArcadeSession.id == AnswerEvent.session_id)
            .where(ArcadeSession.user_id == owner_id)
        )
        if incorrect_only:
            history = history.where(AnswerEvent.is_correct.is_(False))
        stmt = stmt.where(Question.id.in_(history))
        if chapters:
            stmt = stmt.where(Question.chapter.in_(chapters))
    elif mode != "all":
        raise EmptySelection(f"Unknown selection mode {mode!r}")

    ids = sorted(db.execute(stmt).scalars().all())
    if question_count is not None and question_count < len(ids):
        ids = (rng or random.SystemRandom()).sample(ids, question_count)
    return set(ids)


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def load_questions(db: Session, records: Iterable[Dict], commit: bool = True) -> int:
    """
    Bulk import question records into the bank.

    Each record has ``chapter``, ``question``, ``choice_a``..``choice_d``,
    ``correct_answer`` and an optional ``explanation``. The whole batch is
    rejected if any record is invalid.
    """
    rows = []
    for i, rec in enumerate(records):
        chapter, prompt = _clean(rec.get("chapter")), _clean(rec.get("question"))
        if not chapter or not prompt:
            raise InvalidQuestion(f"Record {i}: chapter and question are required")
        choices = {label: _clean(rec.get(f"choice_{label}")) for label in CHOICE_LABELS}
        present = [label for label, text in choices.items() if text]
        if len(present) < 2:
            raise InvalidQuestion(f"Record {i}: at least two choices are required")
        correct = (_clean(rec.get("correct_answer")) or "").lower()
        if correct not in present:
            raise InvalidQuestion(f"Record {i}: correct answer {rec.get('correct_answer')!r} is not a listed choice")
        rows.append(Question(
            chapter=chapter, prompt=prompt,
            choice_a=choices["a"], choice_b=choices["b"], choice_c=choices["c"], choice_d=choices["d"],
            correct_answer=correct.upper(), explanation=_clean(rec.get("explanation")),
        ))
    db.add_all(rows)
    if commit:
        db.commit()
    else:
        db.flush()
    logger.info(f"Imported {len(rows)} questions into the bank")
    return len(rows)
