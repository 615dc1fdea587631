from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.clock import iso
from app.core.security import get_current_user_id
from app.db.session import get_db
from app.models.quiz import Quiz
from app.routers._ids import parse_uuid
from app.schemas.attempt import AttemptListResponse, LeaderboardResponse
from app.schemas.quiz import QuestionCreate, QuizCreate, QuizListResponse, QuizOut, QuizUpdate
from app.services.attempts import AttemptService
from app.services.leaderboard import get_leaderboard
from app.services.quizzes import QuizService

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


def _quiz_out(quiz: Quiz) -> dict:
    return {
        "id": str(quiz.id),
        "title": quiz.title,
        "description": quiz.description,
        "owner_id": quiz.owner_id,
        "created_at": iso(quiz.created_at),
        "is_active": bool(quiz.is_active),
        "question_count": len(quiz.questions),
        "questions": [
            {
                "id": str(q.id),
                "position": int(q.position),
                "text": q.text,
                "explanation": q.explanation,
                "image_url": q.image_url,
                "choices": [{"id": str(c.id), "text": c.text, "is_correct": bool(c.is_correct)} for c in q.choices],
            }
            for q in quiz.questions
        ],
    }


@router.post("", response_model=QuizOut, status_code=201)
def create_quiz(body: QuizCreate, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return _quiz_out(QuizService(db).create_quiz(body, user_id))


@router.get("", response_model=QuizListResponse)
def list_quizzes(
    active: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: str = Depends(get_current_user_id),
):
    return {"items": QuizService(db).list_quizzes(active_only=active)}


@router.get("/{quiz_id}", response_model=QuizOut)
def get_quiz(quiz_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    quiz = QuizService(db).get_quiz(parse_uuid(quiz_id, name="quiz id"))
    out = _quiz_out(quiz)
    if quiz.owner_id != user_id:
        # Learners never see the answer key.
        for q in out["questions"]:
            for c in q["choices"]:
                c["is_correct"] = False
    return out


@router.patch("/{quiz_id}", response_model=QuizOut)
def update_quiz(
    quiz_id: str,
    body: QuizUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return _quiz_out(QuizService(db).update_quiz(parse_uuid(quiz_id, name="quiz id"), body, user_id))


@router.delete("/{quiz_id}")
def delete_quiz(quiz_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    QuizService(db).delete_quiz(parse_uuid(quiz_id, name="quiz id"), user_id)
    return {"ok": True}


@router.post("/{quiz_id}/toggle", response_model=QuizOut)
def toggle_quiz(quiz_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return _quiz_out(QuizService(db).toggle_active(parse_uuid(quiz_id, name="quiz id"), user_id))


@router.post("/{quiz_id}/questions", response_model=QuizOut, status_code=201)
def add_question(
    quiz_id: str,
    body: QuestionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return _quiz_out(QuizService(db).add_question(parse_uuid(quiz_id, name="quiz id"), body, user_id))


@router.delete("/{quiz_id}/questions/{question_id}", response_model=QuizOut)
def remove_question(
    quiz_id: str,
    question_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    quiz = QuizService(db).remove_question(
        parse_uuid(quiz_id, name="quiz id"),
        parse_uuid(question_id, name="question id"),
        user_id,
    )
    return _quiz_out(quiz)


@router.get("/{quiz_id}/attempts", response_model=AttemptListResponse)
def quiz_attempts(quiz_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return {"items": AttemptService(db).list_quiz_attempts(parse_uuid(quiz_id, name="quiz id"), user_id)}


@router.get("/{quiz_id}/leaderboard", response_model=LeaderboardResponse)
def leaderboard(
    quiz_id: str,
    top_count: int | None = Query(default=None),
    db: Session = Depends(get_db),
    _: str = Depends(get_current_user_id),
):
    qid = parse_uuid(quiz_id, name="quiz id")
    return {"quiz_id": str(qid), "items": get_leaderboard(db, quiz_id=qid, top_count=top_count)}
