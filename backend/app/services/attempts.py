from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, iso, utcnow
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
from app.models.attempt import QuizAttempt, QuizAttemptAnswer
from app.models.quiz import Quiz
from app.services.leaderboard import ranked_attempts_query
from app.services.quizzes import load_quiz_aggregate
from app.services.scoring import ScoreResult, score_answers
from app.services.stats import recompute_user_stats


log = logging.getLogger(__name__)


def _is_answer_clash(exc: IntegrityError) -> bool:
    # Postgres names the constraint, SQLite names the columns.
    text = str(exc.orig)
    return "uq_attempt_question" in text or "quiz_attempt_answers.attempt_id" in text


def attempt_payload(attempt: QuizAttempt, quiz_title: str | None) -> dict:
    return {
        "id": str(attempt.id),
        "quiz_id": str(attempt.quiz_id),
        "quiz_title": quiz_title,
        "user_id": attempt.user_id,
        "started_at": iso(attempt.started_at),
        "completed_at": iso(attempt.completed_at),
        "score": int(attempt.score or 0),
        "is_completed": attempt.completed_at is not None,
    }


def _result_payload(
    *,
    attempt_id: uuid.UUID,
    quiz: Quiz,
    scored: ScoreResult,
    score: int,
    correct: int,
    total: int,
    started_at: datetime,
    completed_at: datetime,
    duration_ms: int,
) -> dict:
    return {
        "attempt_id": str(attempt_id),
        "quiz_id": str(quiz.id),
        "quiz_title": quiz.title,
        "total_questions": total,
        "correct_answers": correct,
        "incorrect_answers": total - correct,
        "score": score,
        "started_at": iso(started_at),
        "completed_at": iso(completed_at),
        "duration_seconds": duration_ms / 1000.0,
        "question_results": [
            {
                "question_id": str(o.question_id),
                "question_text": o.question_text,
                "explanation": o.explanation,
                "selected_choice_id": str(o.selected_choice_id) if o.selected_choice_id else None,
                "selected_choice_text": o.selected_choice_text,
                "correct_choice_id": str(o.correct_choice_id) if o.correct_choice_id else None,
                "correct_choice_text": o.correct_choice_text,
                "is_correct": o.is_correct,
            }
            for o in scored.outcomes
        ],
    }


class AttemptService:
    """Open -> completed lifecycle of a learner's attempt at a quiz."""

    def __init__(self, db: Session, *, now: Callable[[], datetime] = utcnow):
        self.db = db
        self.now = now

    def _get_own_attempt(self, attempt_id: uuid.UUID, user_id: str) -> QuizAttempt:
        # Ownership is part of the lookup: a foreign attempt is indistinguishable from a missing one.
        attempt = self.db.scalar(
            select(QuizAttempt).where(QuizAttempt.id == attempt_id, QuizAttempt.user_id == user_id)
        )
        if attempt is None:
            raise AttemptNotFound(attempt_id=str(attempt_id))
        return attempt

    def start_attempt(self, quiz_id: uuid.UUID, user_id: str) -> dict:
        quiz = load_quiz_aggregate(self.db, quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id=str(quiz_id))
        if not quiz.is_active:
            log.warning("start rejected: quiz %s is inactive", quiz_id)
            raise QuizInactive(quiz_id=str(quiz_id))
        if not quiz.questions:
            log.warning("start rejected: quiz %s has no questions", quiz_id)
            raise QuizEmpty(quiz_id=str(quiz_id))

        attempt = QuizAttempt(quiz_id=quiz.id, user_id=user_id, started_at=self.now(), score=0)
        self.db.add(attempt)
        self.db.commit()

        log.info("attempt started: %s for quiz %s by %s", attempt.id, quiz.id, user_id)

        return {
            "attempt": attempt_payload(attempt, quiz.title),
            "questions": [
                {
                    "id": str(q.id),
                    "text": q.text,
                    "image_url": q.image_url,
                    "choices": [{"id": str(c.id), "text": c.text} for c in q.choices],
                }
                for q in quiz.questions
            ],
        }

    def submit_attempt(self, attempt_id: uuid.UUID, user_id: str, answers: Iterable[Any]) -> dict:
        attempt = self._get_own_attempt(attempt_id, user_id)
        if attempt.completed_at is not None:
            raise AlreadyCompleted(attempt_id=str(attempt_id))

        quiz = load_quiz_aggregate(self.db, attempt.quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id=str(attempt.quiz_id))

        submitted = list(answers or [])
        total = len(quiz.questions)
        if len(submitted) != total:
            log.warning(
                "submit rejected: attempt %s expected %d answers, got %d", attempt_id, total, len(submitted)
            )
            raise AnswerCountMismatch(
                f"expected {total} answers, got {len(submitted)}", expected=total, received=len(submitted)
            )

        scored = score_answers(quiz.questions, submitted)

        started_at = as_utc(attempt.started_at)
        completed_at = max(as_utc(self.now()), started_at)
        duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        # The conditional update is the completion gate: only one submit can flip completed_at.
        res = self.db.execute(
            update(QuizAttempt)
            .where(QuizAttempt.id == attempt.id, QuizAttempt.completed_at.is_(None))
            .values(
                completed_at=completed_at,
                score=scored.score,
                correct_count=scored.correct,
                total_questions=scored.total,
                duration_ms=duration_ms,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            self.db.rollback()
            raise AlreadyCompleted(attempt_id=str(attempt_id))

        for o in scored.outcomes:
            if o.selected_choice_id is None:
                continue
            self.db.add(
                QuizAttemptAnswer(
                    attempt_id=attempt.id,
                    question_id=o.question_id,
                    choice_id=o.selected_choice_id,
                    is_correct=o.is_correct,
                    answered_at=completed_at,
                )
            )

        try:
            self.db.flush()
            recompute_user_stats(self.db, user_id=user_id)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_answer_clash(e):
                log.error("submit failed: attempt %s: %s", attempt_id, e.orig)
                raise
            raise AlreadyCompleted(attempt_id=str(attempt_id)) from e

        log.info(
            "attempt completed: %s quiz=%s user=%s score=%d (%d/%d)",
            attempt_id,
            quiz.id,
            user_id,
            scored.score,
            scored.correct,
            scored.total,
        )

        return _result_payload(
            attempt_id=attempt_id,
            quiz=quiz,
            scored=scored,
            score=scored.score,
            correct=scored.correct,
            total=scored.total,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=duration_ms,
        )

    def get_attempt(self, attempt_id: uuid.UUID, user_id: str) -> dict:
        attempt = self._get_own_attempt(attempt_id, user_id)
        title = self.db.scalar(select(Quiz.title).where(Quiz.id == attempt.quiz_id))
        return attempt_payload(attempt, title)

    def get_attempt_result(self, attempt_id: uuid.UUID, user_id: str) -> dict:
        attempt = self._get_own_attempt(attempt_id, user_id)
        if attempt.completed_at is None:
            raise AttemptNotCompleted(attempt_id=str(attempt_id))

        quiz = load_quiz_aggregate(self.db, attempt.quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id=str(attempt.quiz_id))

        # Questions are only appended once a quiz has attempts, so the ones this
        # attempt was scored against are the first total_questions by position.
        total = int(attempt.total_questions)
        scored_questions = quiz.questions[:total]

        stored = self.db.scalars(select(QuizAttemptAnswer).where(QuizAttemptAnswer.attempt_id == attempt.id)).all()
        scored = score_answers(scored_questions, stored)

        return _result_payload(
            attempt_id=attempt.id,
            quiz=quiz,
            scored=scored,
            score=int(attempt.score),
            correct=int(attempt.correct_count),
            total=total,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            duration_ms=int(attempt.duration_ms or 0),
        )

    def list_user_attempts(self, user_id: str) -> list[dict]:
        rows = self.db.execute(
            select(QuizAttempt, Quiz.title)
            .outerjoin(Quiz, Quiz.id == QuizAttempt.quiz_id)
            .where(QuizAttempt.user_id == user_id)
            .order_by(QuizAttempt.started_at.desc())
        ).all()
        return [attempt_payload(a, title) for a, title in rows]

    def list_quiz_attempts(self, quiz_id: uuid.UUID, caller_id: str) -> list[dict]:
        quiz = self.db.scalar(select(Quiz).where(Quiz.id == quiz_id))
        if quiz is None:
            raise QuizNotFound(quiz_id=str(quiz_id))
        if quiz.owner_id != caller_id:
            raise Forbidden("only the quiz owner can list its attempts", quiz_id=str(quiz_id))

        attempts = self.db.scalars(ranked_attempts_query(quiz.id)).all()
        return [attempt_payload(a, quiz.title) for a in attempts]
