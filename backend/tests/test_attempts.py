import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.errors import (
    AlreadyCompleted,
    AnswerCountMismatch,
    AttemptNotCompleted,
    AttemptNotFound,
    Forbidden,
    QuizEmpty,
    QuizInactive,
    QuizNotFound,
)
from app.db import session as session_module
from app.models.attempt import QuizAttempt, QuizAttemptAnswer
from app.models.user import UserStats
from app.schemas.attempt import AnswerSubmit
from app.services.attempts import AttemptService
from app.services.quizzes import QuizService
from app.services.stats import get_user_stats

from conftest import make_question, make_quiz_draft


def _answers(quiz, picks: list[int]) -> list[AnswerSubmit]:
    return [
        AnswerSubmit(question_id=str(q.id), choice_id=str(q.choices[pick].id))
        for q, pick in zip(quiz.questions, picks)
    ]


def _attempt_count(db, quiz_id) -> int:
    return db.scalar(select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_id == quiz_id))


@pytest.fixture()
def quiz(db, author_id):
    return QuizService(db).create_quiz(make_quiz_draft(2), author_id)


def test_start_creates_open_attempt(db, quiz, learner_id, clock):
    started = AttemptService(db, now=clock).start_attempt(quiz.id, learner_id)

    attempt = started["attempt"]
    assert attempt["is_completed"] is False
    assert attempt["score"] == 0
    assert attempt["user_id"] == learner_id
    assert attempt["started_at"] == clock().isoformat()
    assert [q["id"] for q in started["questions"]] == [str(q.id) for q in quiz.questions]
    assert all("is_correct" not in c for q in started["questions"] for c in q["choices"])


def test_start_allows_parallel_open_attempts(db, quiz, learner_id):
    svc = AttemptService(db)
    a = svc.start_attempt(quiz.id, learner_id)
    b = svc.start_attempt(quiz.id, learner_id)
    assert a["attempt"]["id"] != b["attempt"]["id"]
    assert _attempt_count(db, quiz.id) == 2


def test_start_rejects_missing_inactive_and_empty_quizzes(db, author_id, learner_id):
    quizzes = QuizService(db)
    svc = AttemptService(db)

    with pytest.raises(QuizNotFound):
        svc.start_attempt(uuid.uuid4(), learner_id)

    inactive = quizzes.create_quiz(make_quiz_draft(1), author_id)
    quizzes.toggle_active(inactive.id, author_id)
    with pytest.raises(QuizInactive):
        svc.start_attempt(inactive.id, learner_id)
    assert _attempt_count(db, inactive.id) == 0

    emptied = quizzes.create_quiz(make_quiz_draft(1), author_id)
    quizzes.remove_question(emptied.id, emptied.questions[0].id, author_id)
    with pytest.raises(QuizEmpty):
        svc.start_attempt(emptied.id, learner_id)
    assert _attempt_count(db, emptied.id) == 0


def test_submit_scores_and_completes(db, quiz, learner_id, clock):
    svc = AttemptService(db, now=clock)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    clock.advance(minutes=2)

    result = svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [0, 1]))

    assert result["score"] == 50
    assert result["correct_answers"] == 1
    assert result["incorrect_answers"] == 1
    assert result["total_questions"] == 2
    assert result["duration_seconds"] == 120.0
    assert [r["is_correct"] for r in result["question_results"]] == [True, False]

    stored = db.get(QuizAttempt, attempt_id)
    db.refresh(stored)
    assert stored.completed_at is not None
    assert stored.score == 50
    assert stored.duration_ms == 120_000
    assert db.scalar(select(func.count(QuizAttemptAnswer.id)).where(QuizAttemptAnswer.attempt_id == attempt_id)) == 2


def test_second_submit_is_rejected_and_keeps_first_result(db, quiz, learner_id):
    svc = AttemptService(db)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [0, 0]))

    with pytest.raises(AlreadyCompleted):
        svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [1, 1]))

    stored = db.get(QuizAttempt, attempt_id)
    db.refresh(stored)
    assert stored.score == 100
    answers = db.scalars(select(QuizAttemptAnswer).where(QuizAttemptAnswer.attempt_id == attempt_id)).all()
    assert len(answers) == 2
    assert all(a.is_correct for a in answers)


def test_submit_checks_answer_count(db, quiz, learner_id):
    svc = AttemptService(db)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])

    with pytest.raises(AnswerCountMismatch) as exc:
        svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [0]))
    assert exc.value.context == {"expected": 2, "received": 1}

    stored = db.get(QuizAttempt, attempt_id)
    db.refresh(stored)
    assert stored.completed_at is None


def test_foreign_attempt_looks_missing(db, quiz, learner_id):
    svc = AttemptService(db)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])

    with pytest.raises(AttemptNotFound):
        svc.submit_attempt(attempt_id, "somebody_else", _answers(quiz, [0, 0]))
    with pytest.raises(AttemptNotFound):
        svc.get_attempt(attempt_id, "somebody_else")
    with pytest.raises(AttemptNotFound):
        svc.submit_attempt(uuid.uuid4(), learner_id, _answers(quiz, [0, 0]))


def test_foreign_references_are_dropped_not_fatal(db, quiz, author_id, learner_id):
    other = QuizService(db).create_quiz(make_quiz_draft(1), author_id)
    svc = AttemptService(db)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])

    q1 = quiz.questions[0]
    answers = [
        AnswerSubmit(question_id=str(q1.id), choice_id=str(q1.choices[0].id)),
        AnswerSubmit(question_id=str(other.questions[0].id), choice_id=str(other.questions[0].choices[0].id)),
    ]
    result = svc.submit_attempt(attempt_id, learner_id, answers)

    assert result["score"] == 50
    assert result["question_results"][1]["selected_choice_id"] is None
    stored = db.scalars(select(QuizAttemptAnswer).where(QuizAttemptAnswer.attempt_id == attempt_id)).all()
    assert [a.question_id for a in stored] == [q1.id]


def test_result_is_available_only_after_completion(db, quiz, learner_id, clock):
    svc = AttemptService(db, now=clock)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])

    with pytest.raises(AttemptNotCompleted):
        svc.get_attempt_result(attempt_id, learner_id)

    clock.advance(seconds=45)
    submitted = svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [0, 1]))
    result = svc.get_attempt_result(attempt_id, learner_id)

    assert result["score"] == submitted["score"] == 50
    assert result["correct_answers"] == 1
    assert result["duration_seconds"] == 45.0
    assert result["question_results"] == submitted["question_results"]


def test_statistics_are_recomputed_from_completed_attempts(db, quiz, learner_id):
    svc = AttemptService(db)
    assert get_user_stats(db, user_id=learner_id) == {"user_id": learner_id, "total_attempts": 0, "average_score": 0.0}

    first = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    svc.submit_attempt(first, learner_id, _answers(quiz, [0, 0]))
    second = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    svc.submit_attempt(second, learner_id, _answers(quiz, [0, 1]))
    # Still open, must not count.
    svc.start_attempt(quiz.id, learner_id)

    stats = get_user_stats(db, user_id=learner_id)
    assert stats["total_attempts"] == 2
    assert stats["average_score"] == pytest.approx(75.0)


def test_user_and_quiz_attempt_listings(db, quiz, author_id, learner_id, clock):
    svc = AttemptService(db, now=clock)
    first = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    clock.advance(minutes=1)
    second = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    svc.submit_attempt(first, learner_id, _answers(quiz, [0, 0]))

    mine = svc.list_user_attempts(learner_id)
    assert [a["id"] for a in mine] == [str(second), str(first)]
    assert mine[0]["quiz_title"] == quiz.title

    completed = svc.list_quiz_attempts(quiz.id, author_id)
    assert [a["id"] for a in completed] == [str(first)]

    with pytest.raises(Forbidden):
        svc.list_quiz_attempts(quiz.id, learner_id)


def test_concurrent_submits_complete_the_attempt_once(db, quiz, learner_id):
    all_right = _answers(quiz, [0, 0])
    all_wrong = _answers(quiz, [1, 1])

    with session_module.SessionLocal() as first, session_module.SessionLocal() as second:
        attempt_id = uuid.UUID(AttemptService(first).start_attempt(quiz.id, learner_id)["attempt"]["id"])
        # Both sessions hold the attempt as open before either submits.
        assert first.get(QuizAttempt, attempt_id).completed_at is None
        assert second.get(QuizAttempt, attempt_id).completed_at is None

        won = AttemptService(first).submit_attempt(attempt_id, learner_id, all_right)
        with pytest.raises(AlreadyCompleted):
            AttemptService(second).submit_attempt(attempt_id, learner_id, all_wrong)

    assert won["score"] == 100
    assert db.scalar(select(QuizAttempt.score).where(QuizAttempt.id == attempt_id)) == 100
    answers = db.scalars(select(QuizAttemptAnswer).where(QuizAttemptAnswer.attempt_id == attempt_id)).all()
    assert len(answers) == 2
    assert all(a.is_correct for a in answers)
    assert get_user_stats(db, user_id=learner_id)["total_attempts"] == 1


def test_result_keeps_the_questions_it_was_scored_against(db, quiz, author_id, learner_id):
    svc = AttemptService(db)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [0, 0]))

    QuizService(db).add_question(quiz.id, make_question("Added later?", ["yes", "no"], 0), author_id)
    result = svc.get_attempt_result(attempt_id, learner_id)

    assert result["total_questions"] == 2
    assert len(result["question_results"]) == result["total_questions"]
    assert result["score"] == 100
    assert result["correct_answers"] == 2
    assert all(r["is_correct"] for r in result["question_results"])
    assert "Added later?" not in [r["question_text"] for r in result["question_results"]]


def test_stats_row_created_by_another_writer_is_overwritten(db, quiz, learner_id, monkeypatch):
    # Another submission created the row after this one last looked for it.
    db.add(UserStats(user_id=learner_id, total_attempts=9, average_score=1.0))
    db.commit()
    monkeypatch.setattr(db, "get", lambda *args, **kwargs: None)

    svc = AttemptService(db)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    result = svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [0, 1]))

    assert result["score"] == 50
    assert get_user_stats(db, user_id=learner_id) == {"user_id": learner_id, "total_attempts": 1, "average_score": 50.0}


def test_unrelated_integrity_error_is_not_reported_as_already_completed(db, quiz, learner_id, monkeypatch):
    def clash(*args, **kwargs):
        raise IntegrityError("INSERT INTO user_stats", {}, Exception("UNIQUE constraint failed: user_stats.user_id"))

    monkeypatch.setattr("app.services.attempts.recompute_user_stats", clash)

    svc = AttemptService(db)
    attempt_id = uuid.UUID(svc.start_attempt(quiz.id, learner_id)["attempt"]["id"])
    with pytest.raises(IntegrityError):
        svc.submit_attempt(attempt_id, learner_id, _answers(quiz, [0, 0]))

    stored = db.get(QuizAttempt, attempt_id)
    db.refresh(stored)
    assert stored.completed_at is None
    assert db.scalar(select(func.count(QuizAttemptAnswer.id)).where(QuizAttemptAnswer.attempt_id == attempt_id)) == 0
