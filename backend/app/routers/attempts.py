from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import get_current_user_id
from app.db.session import get_db
from app.routers._ids import parse_uuid
from app.schemas.attempt import (
    AttemptOut,
    AttemptStartRequest,
    AttemptStartResponse,
    AttemptSubmitRequest,
    QuizResultOut,
)
from app.services.attempts import AttemptService

router = APIRouter(prefix="/attempts", tags=["attempts"])


@router.post("", response_model=AttemptStartResponse, status_code=201)
def start_attempt(
    body: AttemptStartRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return AttemptService(db).start_attempt(parse_uuid(body.quiz_id, name="quiz id"), user_id)


@router.post("/{attempt_id}/submit", response_model=QuizResultOut)
def submit_attempt(
    attempt_id: str,
    body: AttemptSubmitRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return AttemptService(db).submit_attempt(parse_uuid(attempt_id, name="attempt id"), user_id, body.answers)


@router.get("/{attempt_id}", response_model=AttemptOut)
def get_attempt(attempt_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return AttemptService(db).get_attempt(parse_uuid(attempt_id, name="attempt id"), user_id)


@router.get("/{attempt_id}/result", response_model=QuizResultOut)
def attempt_result(attempt_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return AttemptService(db).get_attempt_result(parse_uuid(attempt_id, name="attempt id"), user_id)
