"""
Session analytics.

Pure reductions over a session snapshot and its answer history. Nothing here
touches the database; callers load the events in chronological order and pass
them in. Correctness always comes from the stored ``is_correct`` flag.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence

DEFAULT_RECENT_WINDOW = 50

# (label, exclusive upper bound in seconds); None is unbounded
TIME_BUCKETS = (
    ("< 10s", 10),
    ("10-30s", 30),
    ("30-60s", 60),
    ("1-2m", 120),
    ("> 2m", None),
)


def round_div(numerator, denominator) -> int:
    """numerator / denominator rounded half-up to an int; 0 when denominator is 0."""
    if not denominator:
        return 0
    q = Decimal(str(numerator)) / Decimal(str(denominator))
    return int(q.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent(part, whole) -> int:
    """Integer percentage, round-half-up."""
    return round_div(Decimal(str(part)) * 100, whole)


@dataclass(frozen=True)
class AnswerFact:
    chapter: str
    is_correct: bool
    time_spent_seconds: float = 0
    answered_at: Optional[datetime] = None


@dataclass(frozen=True)
class SessionSnapshot:
    total_questions: int
    questions_completed: int
    correct_answers: int
    total_time_seconds: float
    is_active: bool = True
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class OverallStats:
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


@dataclass
class ChapterStats:
    chapter: str
    total_questions: int
    correct_answers: int
    accuracy: int
    average_time: int


@dataclass
class ProgressPoint:
    question_number: int
    accuracy: float
    timestamp: Optional[datetime]
    is_correct: bool


@dataclass
class AnalyticsReport:
    session: OverallStats
    chapter_performance: List[ChapterStats] = field(default_factory=list)
    progress_over_time: List[ProgressPoint] = field(default_factory=list)
    time_distribution: Dict[str, int] = field(default_factory=dict)
    answered: int = 0


def recent_accuracy(facts: Sequence[AnswerFact], window: int = DEFAULT_RECENT_WINDOW) -> int:
    """Accuracy over the last ``min(window, len(facts))`` answers."""
    if window <= 0 or not facts:
        return 0
    recent = facts[-window:]
    return percent(sum(1 for f in recent if f.is_correct), len(recent))


def overall_stats(snapshot: SessionSnapshot, facts: Sequence[AnswerFact],
                  recent_window: int = DEFAULT_RECENT_WINDOW) -> OverallStats:
    done = snapshot.questions_completed
    return OverallStats(
        total_questions=snapshot.total_questions,
        questions_answered=done,
        correct_answers=snapshot.correct_answers,
        accuracy=percent(snapshot.correct_answers, done),
        total_time_seconds=snapshot.total_time_seconds,
        average_time_per_question=round_div(snapshot.total_time_seconds, done),
        questions_remaining=max(snapshot.total_questions - done, 0),
        completion_percentage=percent(done, snapshot.total_questions),
        recent_accuracy=recent_accuracy(facts, recent_window),
        is_active=snapshot.is_active,
        started_at=snapshot.started_at,
        completed_at=snapshot.completed_at,
    )


def chapter_stats(facts: Sequence[AnswerFact]) -> List[ChapterStats]:
    """Per-chapter counts, accuracy and average time, sorted by chapter."""
    totals: Dict[str, list] = {}
    for f in facts:
        bucket = totals.setdefault(f.chapter, [0, 0, 0])
        bucket[0] += 1
        bucket[1] += 1 if f.is_correct else 0
        bucket[2] += f.time_spent_seconds or 0
    return [
        ChapterStats(chapter=chapter, total_questions=n, correct_answers=correct,
                     accuracy=percent(correct, n), average_time=round_div(seconds, n))
        for chapter, (n, correct, seconds) in sorted(totals.items())
    ]


def progress_over_time(facts: Sequence[AnswerFact]) -> List[ProgressPoint]:
    """Cumulative running accuracy after each answer, in answer order."""
    points, correct = [], 0
    for i, f in enumerate(facts, start=1):
        correct += 1 if f.is_correct else 0
        points.append(ProgressPoint(question_number=i, accuracy=correct / i * 100,
                                    timestamp=f.answered_at, is_correct=f.is_correct))
    return points


def time_bucket(seconds) -> str:
    seconds = seconds or 0
    for label, upper in TIME_BUCKETS[:-1]:
        if seconds < upper:
            return label
    return TIME_BUCKETS[-1][0]


def time_distribution(facts: Sequence[AnswerFact]) -> Dict[str, int]:
    """Answer counts per response-time bucket; empty buckets are omitted."""
    counts = {label: 0 for label, _ in TIME_BUCKETS}
    for f in facts:
        counts[time_bucket(f.time_spent_seconds)] += 1
    return {label: n for label, n in counts.items() if n}


def build_report(snapshot: SessionSnapshot, facts: Sequence[AnswerFact],
                 recent_window: int = DEFAULT_RECENT_WINDOW) -> AnalyticsReport:
    facts = list(facts)
    return AnalyticsReport(
        session=overall_stats(snapshot, facts, recent_window),
        chapter_performance=chapter_stats(facts),
        progress_over_time=progress_over_time(facts),
        time_distribution=time_distribution(facts),
        answered=len(facts),
    )
