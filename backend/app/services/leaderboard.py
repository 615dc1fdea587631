from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import iso
from app.core.config import settings
from app.core.errors import InvalidRequest, QuizNotFound
from app.models.attempt import QuizAttempt
from app.models.quiz import Quiz


def ranked_attempts_query(quiz_id: uuid.UUID):
    # Score desc, then fastest first. Rows equal on both keys keep whatever order the database returns.
    return (
        select(QuizAttempt)
        .where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.completed_at.is_not(None))
        .order_by(QuizAttempt.score.desc(), QuizAttempt.duration_ms.asc())
    )


def get_leaderboard(db: Session, *, quiz_id: uuid.UUID, top_count: int | None = None) -> list[dict]:
    limit = settings.leaderboard_default_size if top_count is None else top_count
    if not (1 <= int(limit) <= int(settings.leaderboard_max_size)):
        raise InvalidRequest(
            f"top_count must be between 1 and {settings.leaderboard_max_size}",
            top_count=limit,
        )

    if db.scalar(select(Quiz.id).where(Quiz.id == quiz_id)) is None:
        raise QuizNotFound(quiz_id=str(quiz_id))

    attempts = db.scalars(ranked_attempts_query(quiz_id).limit(int(limit))).all()

    return [
        {
            "rank": rank,
            "attempt_id": str(a.id),
            "user_id": a.user_id,
            "score": int(a.score),
            "started_at": iso(a.started_at),
            "completed_at": iso(a.completed_at),
            "duration_seconds": (a.duration_ms or 0) / 1000.0,
        }
        for rank, a in enumerate(attempts, start=1)
    ]
