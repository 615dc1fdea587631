import os
import sys
from pathlib import Path
import uuid
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.db.base import Base
from app.db import session as session_module
from app.main import create_app
from app.schemas.quiz import ChoiceCreate, QuestionCreate, QuizCreate

# Import models so that they are registered in Base.metadata before create_all.
from app.models.quiz import Quiz, Question, Choice  # noqa: F401
from app.models.attempt import QuizAttempt, QuizAttemptAnswer  # noqa: F401
from app.models.user import UserStats  # noqa: F401


# Configure test DB (SQLite in-memory) at import time so all tests importing
# app.db.session.SessionLocal will get the patched version.
_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
Base.metadata.create_all(bind=_engine)
session_module.engine = _engine
session_module.SessionLocal = session_module.sessionmaker(autocommit=False, autoflush=False, bind=_engine)


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


def make_token(user_id: str) -> str:
    return jwt.encode(
        {"sub": user_id, "iss": settings.jwt_issuer},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def make_question(text: str, choices: list[str], correct: int, explanation: str | None = None) -> QuestionCreate:
    return QuestionCreate(
        text=text,
        explanation=explanation,
        choices=[ChoiceCreate(text=c, is_correct=(i == correct)) for i, c in enumerate(choices)],
    )


def make_quiz_draft(n_questions: int = 2, title: str = "Python basics") -> QuizCreate:
    return QuizCreate(
        title=title,
        description="warm-up",
        questions=[
            make_question(f"Question number {i + 1}?", ["right", "wrong"], correct=0, explanation=f"because {i + 1}")
            for i in range(n_questions)
        ],
    )


@pytest.fixture(scope="session")
def client():
    app = create_app()

    # Ensure app dependencies use our session factory.
    def _get_db_override():
        db = session_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[session_module.get_db] = _get_db_override
    return TestClient(app)


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def author_id():
    return f"author_{uuid.uuid4().hex[:8]}"


@pytest.fixture()
def learner_id():
    return f"learner_{uuid.uuid4().hex[:8]}"


@pytest.fixture()
def author_headers(author_id):
    return {"Authorization": f"Bearer {make_token(author_id)}"}


@pytest.fixture()
def learner_headers(learner_id):
    return {"Authorization": f"Bearer {make_token(learner_id)}"}
