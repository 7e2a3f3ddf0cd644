import threading

import pytest
from sqlalchemy import func, select

from quizarcade.models.orm import AnswerEvent, ArcadeSession, PoolEntry, Question
from quizarcade.services import recorder, review, sequencer
from quizarcade.services.bank import load_questions
from quizarcade.services.errors import (
    AlreadyAnswered, InvalidChoice, InvalidTimeSpent, QuestionNotInPool, SessionNotActive, SessionNotFound,
)


def state(db, session_id):
    """(completed, correct, time, consumed entries, answer events) for a session."""
    db.expire_all()
    s = db.get(ArcadeSession, session_id)
    used = db.scalar(select(func.count()).select_from(PoolEntry)
                     .where(PoolEntry.session_id == session_id, PoolEntry.is_used.is_(True)))
    events = db.scalar(select(func.count()).select_from(AnswerEvent).where(AnswerEvent.session_id == session_id))
    return s.questions_completed, s.correct_answers, s.total_time_seconds, used, events


@pytest.fixture
def session_id(db, bank_ids):
    return sequencer.create_session(db, "alice").id


def test_correct_answer_is_case_and_whitespace_insensitive(db, bank_ids, session_id):
    out = recorder.record_answer(db, session_id, bank_ids[0], "  b ", 12)
    assert out.is_correct is True
    assert out.correct_label == "B"
    assert out.chosen_label == "b"
    assert out.explanation
    assert state(db, session_id) == (1, 1, 12, 1, 1)

    event = db.execute(select(AnswerEvent).where(AnswerEvent.session_id == session_id)).scalar_one()
    assert (event.user_answer, event.correct_answer, event.is_correct) == ("b", "b", True)


def test_incorrect_answer_counts_without_correct(db, bank_ids, session_id):
    out = recorder.record_answer(db, session_id, bank_ids[1], "D", 4)
    assert out.is_correct is False
    assert state(db, session_id) == (1, 0, 4, 1, 1)


def test_invalid_choice_mutates_nothing(db, bank_ids, session_id):
    with pytest.raises(InvalidChoice):
        recorder.record_answer(db, session_id, bank_ids[0], "e", 5)
    assert state(db, session_id) == (0, 0, 0, 0, 0)


def test_label_of_missing_choice_is_invalid(db):
    load_questions(db, [{"chapter": "tf", "question": "True?", "choice_a": "True", "choice_b": "False",
                         "choice_c": "", "correct_answer": "a"}])
    s = sequencer.create_session(db, "alice")
    qid = sequencer.peek_next(db, s.id).question.id
    with pytest.raises(InvalidChoice):
        recorder.record_answer(db, s.id, qid, "c", 1)
    assert recorder.record_answer(db, s.id, qid, "A", 1).is_correct is True


def test_negative_time_is_rejected_not_clamped(db, bank_ids, session_id):
    with pytest.raises(InvalidTimeSpent):
        recorder.record_answer(db, session_id, bank_ids[0], "b", -1)
    assert state(db, session_id) == (0, 0, 0, 0, 0)


def test_second_submit_is_already_answered_regardless_of_payload(db, bank_ids, session_id):
    recorder.record_answer(db, session_id, bank_ids[0], "a", 3)
    for label, seconds in (("a", 3), ("b", 3), ("e", 3), ("b", -5)):
        with pytest.raises(AlreadyAnswered):
            recorder.record_answer(db, session_id, bank_ids[0], label, seconds)
    assert state(db, session_id) == (1, 0, 3, 1, 1)


def test_question_outside_pool(db, bank_ids):
    s = sequencer.create_session(db, "alice", mode="by_chapter", chapters=["research"])
    with pytest.raises(QuestionNotInPool):
        recorder.record_answer(db, s.id, bank_ids[0], "b", 1)
    with pytest.raises(QuestionNotInPool):
        recorder.record_answer(db, s.id, 12345, "b", 1)


def test_unknown_session(db, bank_ids):
    with pytest.raises(SessionNotFound):
        recorder.record_answer(db, 777, bank_ids[0], "b", 1)


def test_ended_session_rejects_answers(db, bank_ids, session_id):
    sequencer.end_session(db, session_id)
    with pytest.raises(SessionNotActive):
        recorder.record_answer(db, session_id, bank_ids[0], "b", 1)
    assert state(db, session_id) == (0, 0, 0, 0, 0)


def test_counters_match_consumed_entries_and_events(db, bank_ids, session_id):
    for i, qid in enumerate(bank_ids[:6]):
        recorder.record_answer(db, session_id, qid, "b" if i % 2 else "c", i)
        completed, correct, seconds, used, events = state(db, session_id)
        assert completed == used == events == i + 1
    assert state(db, session_id) == (6, 3, 15, 6, 6)


def test_concurrent_submissions_only_one_wins(session_factory, bank_ids):
    with session_factory() as db:
        sid = sequencer.create_session(db, "alice").id
    qid = bank_ids[0]
    barrier = threading.Barrier(2)
    results, lock = [], threading.Lock()

    def submit(label):
        db = session_factory()
        try:
            barrier.wait()
            out = recorder.record_answer(db, sid, qid, label, 7)
            with lock:
                results.append(("ok", label, out.is_correct))
        except AlreadyAnswered:
            with lock:
                results.append(("conflict", label, None))
        finally:
            db.close()

    threads = [threading.Thread(target=submit, args=(label,)) for label in ("b", "a")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(r[0] for r in results) == ["conflict", "ok"]
    winner = next(r for r in results if r[0] == "ok")
    with session_factory() as db:
        completed, correct, seconds, used, events = state(db, sid)
    assert (completed, seconds, used, events) == (1, 7, 1, 1)
    assert correct == (1 if winner[1] == "b" else 0)


@pytest.mark.parametrize("seconds", [0.9, 2.5, None, True, "7"])
def test_fractional_or_non_numeric_time_is_rejected(db, bank_ids, session_id, seconds):
    with pytest.raises(InvalidTimeSpent):
        recorder.record_answer(db, session_id, bank_ids[0], "b", seconds)
    assert state(db, session_id) == (0, 0, 0, 0, 0)


def test_integral_float_time_is_accepted(db, bank_ids, session_id):
    recorder.record_answer(db, session_id, bank_ids[0], "b", 3.0)
    assert state(db, session_id) == (1, 1, 3, 1, 1)


def test_session_closed_mid_submit_records_nothing(session_factory, bank_ids, monkeypatch):
    with session_factory() as setup:
        sid = sequencer.create_session(setup, "alice").id
    real_labels = recorder.choice_labels

    def labels_then_close(question):
        # another request ends the session after the activity check passed
        with session_factory() as other:
            sequencer.end_session(other, sid)
        return real_labels(question)

    monkeypatch.setattr(recorder, "choice_labels", labels_then_close)
    with session_factory() as db:
        with pytest.raises(SessionNotActive):
            recorder.record_answer(db, sid, bank_ids[0], "b", 5)
        completed, correct, seconds, used, events = state(db, sid)
    assert (completed, correct, seconds, used, events) == (0, 0, 0, 0, 0)


def test_review_shows_label_recorded_at_answer_time(db, bank_ids, session_id):
    recorder.record_answer(db, session_id, bank_ids[0], "b", 2)
    q = db.get(Question, bank_ids[0])
    q.correct_answer = "C"
    db.commit()

    page = review.review_answers(db, session_id)
    assert [(i.question_id, i.correct_answer, i.is_correct) for i in page.items] == [(bank_ids[0], "B", True)]
