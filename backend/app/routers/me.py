from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import get_current_user_id
from app.db.session import get_db
from app.schemas.attempt import AttemptListResponse
from app.schemas.quiz import QuizListResponse
from app.schemas.stats import UserStatsResponse
from app.services.attempts import AttemptService
from app.services.quizzes import QuizService
from app.services.stats import get_user_stats

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/attempts", response_model=AttemptListResponse)
def my_attempts(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return {"items": AttemptService(db).list_user_attempts(user_id)}


@router.get("/stats", response_model=UserStatsResponse)
def my_stats(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return get_user_stats(db, user_id=user_id)


@router.get("/quizzes", response_model=QuizListResponse)
def my_quizzes(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return {"items": QuizService(db).list_owned_quizzes(user_id)}
