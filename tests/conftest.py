import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from quizarcade.core.auth import issue_token
from quizarcade.core.database import get_db, init_db, make_engine
from quizarcade.main import app
from quizarcade.models.orm import Question
from quizarcade.services.bank import load_questions


def question_record(chapter, n, correct="B", **extra):
    rec = {
        "chapter": chapter,
        "question": f"{chapter} question {n}?",
        "choice_a": f"{chapter} {n} alpha",
        "choice_b": f"{chapter} {n} bravo",
        "choice_c": f"{chapter} {n} charlie",
        "choice_d": f"{chapter} {n} delta",
        "correct_answer": correct,
        "explanation": f"Bravo is right for {n}.",
    }
    rec.update(extra)
    return rec


@pytest.fixture
def engine(tmp_path):
    # file-backed so that concurrent sessions in different threads share it
    eng = make_engine(f"sqlite:///{tmp_path / 'arcade.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def bank_ids(db):
    """Ten questions: nine in 'ethics', the last in 'research'. Correct label is B throughout."""
    records = [question_record("ethics", i) for i in range(1, 10)] + [question_record("research", 10)]
    load_questions(db, records)
    return list(db.execute(select(Question.id).order_by(Question.id)).scalars().all())


def auth_headers(user_id="alice", roles=("student",)):
    return {"Authorization": f"Bearer {issue_token(user_id, list(roles))}"}


@pytest.fixture
def client(session_factory, bank_ids):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return auth_headers
