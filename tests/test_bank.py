import random

import pytest

from quizarcade.services import bank, recorder, sequencer
from quizarcade.services.errors import EmptySelection, InvalidQuestion

from conftest import question_record


def test_lookups(db, bank_ids):
    q = bank.get_question(db, bank_ids[0])
    assert q.chapter == "ethics" and q.correct_answer == "B"
    assert bank.choice_labels(q) == ["a", "b", "c", "d"]
    assert bank.get_question(db, 10 ** 6) is None
    found = bank.get_questions(db, bank_ids[:3] + [10 ** 6])
    assert sorted(found) == sorted(bank_ids[:3])
    assert bank.get_questions(db, []) == {}


def test_list_chapters(db, bank_ids):
    assert bank.list_chapters(db) == [
        {"name": "ethics", "question_count": 9},
        {"name": "research", "question_count": 1},
    ]


def test_select_question_ids(db, bank_ids):
    assert bank.select_question_ids(db) == set(bank_ids)
    assert bank.select_question_ids(db, "by_chapter", ["research"]) == {bank_ids[-1]}
    sample = bank.select_question_ids(db, question_count=3, rng=random.Random(1))
    assert len(sample) == 3 and sample <= set(bank_ids)
    assert bank.select_question_ids(db, question_count=50) == set(bank_ids)
    with pytest.raises(EmptySelection):
        bank.select_question_ids(db, "by_chapter", [])
    with pytest.raises(EmptySelection):
        bank.select_question_ids(db, "adaptive")


def test_import_normalizes_and_drops_blank_choices(db):
    n = bank.load_questions(db, [question_record("stats", 1, correct=" c ", choice_d="  ", explanation="")])
    assert n == 1
    q = bank.get_question(db, 1)
    assert q.correct_answer == "C"
    assert q.choice_d is None and q.explanation is None
    assert list(q.choices()) == ["a", "b", "c"]


@pytest.mark.parametrize("overrides", [
    {"chapter": " "},
    {"question": None},
    {"choice_b": "", "choice_c": "", "choice_d": ""},
    {"correct_answer": "E"},
    {"choice_d": "", "correct_answer": "D"},
])
def test_import_rejects_whole_batch_on_bad_record(db, overrides):
    records = [question_record("stats", 1), {**question_record("stats", 2), **overrides}]
    with pytest.raises(InvalidQuestion):
        bank.load_questions(db, records)
    db.rollback()
    assert bank.list_chapters(db) == []


def answer_history(db, owner, answers):
    """Record ``{question_id: label}`` for ``owner`` in a fresh session."""
    s = sequencer.create_session(db, owner)
    for qid, label in answers.items():
        recorder.record_answer(db, s.id, qid, label, 2)
    return s


def test_review_selection_uses_owner_history(db, bank_ids):
    answer_history(db, "alice", {bank_ids[0]: "b", bank_ids[1]: "c", bank_ids[-1]: "a"})
    answer_history(db, "bob", {bank_ids[2]: "c"})

    assert bank.select_question_ids(db, "review", owner_id="alice") == {bank_ids[0], bank_ids[1], bank_ids[-1]}
    assert bank.select_question_ids(db, "review", owner_id="alice", incorrect_only=True) == {bank_ids[1], bank_ids[-1]}
    assert bank.select_question_ids(db, "review", ["research"], owner_id="alice") == {bank_ids[-1]}
    assert bank.select_question_ids(db, "review", owner_id="bob") == {bank_ids[2]}


def test_review_selection_without_history_is_empty(db, bank_ids):
    assert bank.select_question_ids(db, "review", owner_id="carol") == set()
    with pytest.raises(EmptySelection):
        bank.select_question_ids(db, "review")
