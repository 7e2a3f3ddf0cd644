from dataclasses import asdict
from datetime import datetime
from typing import Dict, List, Literal, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, constr
from sqlalchemy.orm import Session
from quizarcade.core.auth import Identity, learner
from quizarcade.core.config import settings
from quizarcade.core.database import get_db
from quizarcade.models.orm import ArcadeSession
from quizarcade.services import recorder, review, sequencer

router = APIRouter()

class SessionCreate(BaseModel):
    mode: Literal["all", "by_chapter", "review"] = "all"
    chapters: List[str] = Field(default_factory=list)
    question_count: Optional[int] = Field(default=None, ge=1, le=settings.MAX_SESSION_QUESTIONS)
    # review mode only: restrict to questions answered incorrectly
    incorrect_only: bool = False

class SessionCreated(BaseModel):
    session_id: int
    total_questions: int

class SessionOut(BaseModel):
    session_id: int
    mode: str
    chapters: List[str]
    total_questions: int
    questions_completed: int
    correct_answers: int
    total_time_seconds: int
    is_active: bool
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class QuestionPayload(BaseModel):
    id: int
    chapter: str
    question: str
    choices: Dict[str, str]

class ProgressOut(BaseModel):
    current: int
    total: int
    correct_answers: int
    percentage: int

class NextQuestionOut(BaseModel):
    question: Optional[QuestionPayload] = None
    progress: Optional[ProgressOut] = None
    is_complete: bool
    message: Optional[str] = None

class AnswerSubmit(BaseModel):
    question_id: int
    answer: constr(min_length=1, max_length=16)
    time_spent: int = 0

class AnswerResult(BaseModel):
    is_correct: bool
    correct_answer: str
    explanation: Optional[str] = None
    user_answer: str

class SummaryOut(BaseModel):
    session_id: int
    total_questions: int
    questions_completed: int
    correct_answers: int
    total_time_seconds: int
    accuracy: int
    is_active: bool
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class OverallOut(BaseModel):
    total_questions: int
    questions_answered: int
    correct_answers: int
    accuracy: int
    total_time_seconds: float
    average_time_per_question: int
    questions_remaining: int
    completion_percentage: int
    recent_accuracy: int
    is_active: bool
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class ChapterOut(BaseModel):
    chapter: str
    total_questions: int
    correct_answers: int
    accuracy: int
    average_time: int

class ProgressPointOut(BaseModel):
    question_number: int
    accuracy: float
    timestamp: Optional[datetime] = None
    is_correct: bool

class AnalyticsOut(BaseModel):
    session: OverallOut
    chapter_performance: List[ChapterOut]
    progress_over_time: List[ProgressPointOut]
    time_distribution: Dict[str, int]
    answered: int

class ReviewItemOut(BaseModel):
    question_id: int
    chapter: str
    prompt: str
    choices: Dict[str, str]
    correct_answer: str
    explanation: Optional[str] = None
    user_answer: str
    is_correct: bool
    time_spent_seconds: int
    answered_at: Optional[datetime] = None

class ReviewOut(BaseModel):
    session_id: int
    filter: str
    page: int
    page_size: int
    total: int
    pages: int
    items: List[ReviewItemOut]

def _session_out(s: ArcadeSession) -> SessionOut:
    return SessionOut(session_id=s.id, mode=s.mode, chapters=s.chapters or [], total_questions=s.total_questions,
                      questions_completed=s.questions_completed, correct_answers=s.correct_answers,
                      total_time_seconds=s.total_time_seconds, is_active=s.is_active,
                      started_at=s.started_at, completed_at=s.completed_at)

@router.post("", response_model=SessionCreated, status_code=201)
def create_session(payload: SessionCreate, user: Identity = Depends(learner), db: Session = Depends(get_db)):
    s = sequencer.create_session(db, user.sub, payload.mode, payload.chapters, payload.question_count,
                                 incorrect_only=payload.incorrect_only)
    return SessionCreated(session_id=s.id, total_questions=s.total_questions)

@router.get("", response_model=List[SessionOut])
def list_sessions(user: Identity = Depends(learner), db: Session = Depends(get_db)):
    return [_session_out(s) for s in sequencer.list_sessions(db, user.sub)]

@router.get("/active", response_model=Optional[SessionOut])
def active_session(user: Identity = Depends(learner), db: Session = Depends(get_db)):
    s = sequencer.get_active_session(db, user.sub)
    return _session_out(s) if s else None

@router.get("/{session_id}", response_model=SummaryOut)
def get_summary(session_id: int, user: Identity = Depends(learner), db: Session = Depends(get_db)):
    return SummaryOut(**asdict(review.session_summary(db, session_id, user.owner_scope())))

@router.get("/{session_id}/next", response_model=NextQuestionOut)
def next_question(session_id: int, user: Identity = Depends(learner), db: Session = Depends(get_db)):
    nxt = sequencer.peek_next(db, session_id, user.owner_scope())
    if nxt is sequencer.COMPLETE:
        return NextQuestionOut(is_complete=True, message="Arcade session complete!")
    q = nxt.question
    return NextQuestionOut(
        question=QuestionPayload(id=q.id, chapter=q.chapter, question=q.prompt, choices=q.choices()),
        progress=ProgressOut(**asdict(nxt.progress)),
        is_complete=False,
    )

@router.post("/{session_id}/answers", response_model=AnswerResult)
def submit_answer(session_id: int, payload: AnswerSubmit, user: Identity = Depends(learner), db: Session = Depends(get_db)):
    out = recorder.record_answer(db, session_id, payload.question_id, payload.answer, payload.time_spent, user.owner_scope())
    return AnswerResult(is_correct=out.is_correct, correct_answer=out.correct_label,
                        explanation=out.explanation, user_answer=out.chosen_label)

@router.post("/{session_id}/end", response_model=SessionOut)
def end_session(session_id: int, user: Identity = Depends(learner), db: Session = Depends(get_db)):
    return _session_out(sequencer.end_session(db, session_id, user.owner_scope()))

@router.get("/{session_id}/analytics", response_model=AnalyticsOut)
def get_analytics(session_id: int, user: Identity = Depends(learner), db: Session = Depends(get_db)):
    report = review.session_analytics(db, session_id, user.owner_scope(), settings.RECENT_WINDOW)
    return AnalyticsOut(**asdict(report))

@router.get("/{session_id}/review", response_model=ReviewOut)
def get_review(session_id: int, filter: Literal["all", "correct", "incorrect"] = Query("all"),
               page: int = Query(1, ge=1), page_size: int = Query(settings.REVIEW_PAGE_SIZE, ge=1, le=settings.REVIEW_MAX_PAGE_SIZE),
               user: Identity = Depends(learner), db: Session = Depends(get_db)):
    return ReviewOut(**asdict(review.review_answers(db, session_id, filter, page, page_size, user.owner_scope())))
