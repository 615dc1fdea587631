from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.attempt import QuizAttempt
from app.models.user import UserStats


def _insert_for(db: Session):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


def recompute_user_stats(db: Session, *, user_id: str) -> None:
    """Rebuild a user's totals from their completed attempts.

    Runs inside the caller's transaction and does not commit. The row is
    written with an upsert, so two submissions creating it at once both land;
    overlapping recomputations converge because nothing is incremented.
    """

    count, avg = db.execute(
        select(func.count(QuizAttempt.id), func.avg(QuizAttempt.score)).where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.completed_at.is_not(None),
        )
    ).one()

    values = {
        "total_attempts": int(count or 0),
        "average_score": float(avg) if count else 0.0,
        "updated_at": utcnow(),
    }
    stmt = _insert_for(db)(UserStats).values(user_id=user_id, **values)
    db.execute(stmt.on_conflict_do_update(index_elements=["user_id"], set_=values))


def get_user_stats(db: Session, *, user_id: str) -> dict:
    stats = db.scalar(
        select(UserStats).where(UserStats.user_id == user_id).execution_options(populate_existing=True)
    )
    if stats is None:
        return {"user_id": user_id, "total_attempts": 0, "average_score": 0.0}
    return {
        "user_id": stats.user_id,
        "total_attempts": int(stats.total_attempts or 0),
        "average_score": float(stats.average_score or 0.0),
    }
