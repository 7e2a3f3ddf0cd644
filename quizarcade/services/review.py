"""
Read models over a session: summary counters, analytics bundle and the
paged review of answered questions.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quizarcade.models.orm import AnswerEvent, ArcadeSession, Question
from quizarcade.services import analytics
from quizarcade.services.sequencer import load_session

ReviewFilter = Literal["all", "correct", "incorrect"]


@dataclass
class SessionSummary:
    session_id: int
    total_questions: int
    questions_completed: int
    correct_answers: int
    total_time_seconds: int
    accuracy: int
    is_active: bool
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


@dataclass
class ReviewItem:
    question_id: int
    chapter: str
    prompt: str
    choices: dict
    correct_answer: str
    explanation: Optional[str]
    user_answer: str
    is_correct: bool
    time_spent_seconds: int
    answered_at: Optional[datetime]


@dataclass
class ReviewPage:
    session_id: int
    filter: str
    page: int
    page_size: int
    total: int
    pages: int
    items: List[ReviewItem] = field(default_factory=list)


def snapshot(s: ArcadeSession) -> analytics.SessionSnapshot:
    return analytics.SessionSnapshot(
        total_questions=s.total_questions,
        questions_completed=s.questions_completed,
        correct_answers=s.correct_answers,
        total_time_seconds=s.total_time_seconds,
        is_active=s.is_active,
        started_at=s.started_at,
        completed_at=s.completed_at,
    )


def answer_facts(db: Session, session_id: int) -> List[analytics.AnswerFact]:
    """Answer history in chronological order, joined with each question's chapter."""
    rows = db.execute(
        select(AnswerEvent.is_correct, AnswerEvent.time_spent_seconds, AnswerEvent.answered_at, Question.chapter)
        .join(Question, Question.id == AnswerEvent.question_id)
        .where(AnswerEvent.session_id == session_id)
        .order_by(AnswerEvent.answered_at, AnswerEvent.id)
    ).all()
    return [analytics.AnswerFact(chapter=chapter, is_correct=ok, time_spent_seconds=t, answered_at=at)
            for ok, t, at, chapter in rows]


def session_summary(db: Session, session_id: int, owner_id: Optional[str] = None) -> SessionSummary:
    s = load_session(db, session_id, owner_id)
    return SessionSummary(
        session_id=s.id,
        total_questions=s.total_questions,
        questions_completed=s.questions_completed,
        correct_answers=s.correct_answers,
        total_time_seconds=s.total_time_seconds,
        accuracy=analytics.percent(s.correct_answers, s.questions_completed),
        is_active=s.is_active,
        started_at=s.started_at,
        completed_at=s.completed_at,
    )


def session_analytics(db: Session, session_id: int, owner_id: Optional[str] = None,
                      recent_window: int = analytics.DEFAULT_RECENT_WINDOW) -> analytics.AnalyticsReport:
    s = load_session(db, session_id, owner_id)
    return analytics.build_report(snapshot(s), answer_facts(db, s.id), recent_window)


def review_answers(db: Session, session_id: int, outcome: ReviewFilter = "all",
                   page: int = 1, page_size: int = 20, owner_id: Optional[str] = None) -> ReviewPage:
    s = load_session(db, session_id, owner_id)
    page, page_size = max(page, 1), max(page_size, 1)

    where = [AnswerEvent.session_id == s.id]
    if outcome == "correct":
        where.append(AnswerEvent.is_correct.is_(True))
    elif outcome == "incorrect":
        where.append(AnswerEvent.is_correct.is_(False))

    total = db.scalar(select(func.count(AnswerEvent.id)).where(*where)) or 0
    rows = db.execute(
        select(AnswerEvent, Question)
        .join(Question, Question.id == AnswerEvent.question_id)
        .where(*where)
        .order_by(AnswerEvent.answered_at, AnswerEvent.id)
        .limit(page_size).offset((page - 1) * page_size)
    ).all()
    items = [
        ReviewItem(
            question_id=q.id, chapter=q.chapter, prompt=q.prompt, choices=q.choices(),
            correct_answer=ev.correct_answer.upper(), explanation=q.explanation,
            user_answer=ev.user_answer, is_correct=ev.is_correct,
            time_spent_seconds=ev.time_spent_seconds, answered_at=ev.answered_at,
        )
        for ev, q in rows
    ]
    return ReviewPage(session_id=s.id, filter=outcome, page=page, page_size=page_size,
                      total=total, pages=math.ceil(total / page_size), items=items)
