from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.core.clock import iso, utcnow
from app.core.errors import Forbidden, InvalidQuiz, QuestionNotFound, QuizInUse, QuizNotFound
from app.models.attempt import QuizAttempt
from app.models.quiz import Choice, Question, Quiz
from app.services.validation import validate_question, validate_quiz_draft


log = logging.getLogger(__name__)


def load_quiz_aggregate(db: Session, quiz_id: uuid.UUID) -> Quiz | None:
    """Quiz with its questions and choices, loaded in one read."""
    return db.scalar(
        select(Quiz)
        .where(Quiz.id == quiz_id)
        .options(selectinload(Quiz.questions).selectinload(Question.choices))
        .execution_options(populate_existing=True)
    )


def _build_question(draft: Any, *, position: int) -> Question:
    return Question(
        position=position,
        text=str(draft.text).strip(),
        explanation=(str(draft.explanation).strip() or None) if draft.explanation else None,
        image_url=(str(draft.image_url).strip() or None) if draft.image_url else None,
        choices=[
            Choice(position=i, text=str(c.text).strip(), is_correct=bool(c.is_correct))
            for i, c in enumerate(draft.choices)
        ],
    )


class QuizService:
    def __init__(self, db: Session, *, now: Callable[[], datetime] = utcnow):
        self.db = db
        self.now = now

    def _get_owned(self, quiz_id: uuid.UUID, caller_id: str, *, action: str) -> Quiz:
        quiz = load_quiz_aggregate(self.db, quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id=str(quiz_id))
        if quiz.owner_id != caller_id:
            log.warning("%s rejected: user %s does not own quiz %s", action, caller_id, quiz_id)
            raise Forbidden("only the quiz owner can modify it", quiz_id=str(quiz_id))
        return quiz

    def get_quiz(self, quiz_id: uuid.UUID) -> Quiz:
        quiz = load_quiz_aggregate(self.db, quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id=str(quiz_id))
        return quiz

    def create_quiz(self, draft: Any, author_id: str) -> Quiz:
        validate_quiz_draft(draft)

        quiz = Quiz(
            title=str(draft.title).strip(),
            description=(str(draft.description).strip() or None) if draft.description else None,
            owner_id=author_id,
            created_at=self.now(),
            is_active=True,
            questions=[_build_question(q, position=i) for i, q in enumerate(draft.questions)],
        )
        self.db.add(quiz)
        self.db.commit()

        log.info("quiz created: %s by %s with %d questions", quiz.id, author_id, len(draft.questions))
        return self.get_quiz(quiz.id)

    def update_quiz(self, quiz_id: uuid.UUID, patch: Any, caller_id: str) -> Quiz:
        quiz = self._get_owned(quiz_id, caller_id, action="update_quiz")

        changes = patch.model_dump(exclude_unset=True) if hasattr(patch, "model_dump") else dict(patch)
        if "title" in changes:
            title = str(changes["title"] or "").strip()
            if not title:
                raise InvalidQuiz("quiz title is required")
            quiz.title = title
        if "description" in changes:
            quiz.description = (str(changes["description"]).strip() or None) if changes["description"] else None
        if changes.get("is_active") is not None:
            quiz.is_active = bool(changes["is_active"])

        self.db.commit()
        log.info("quiz updated: %s fields=%s", quiz_id, sorted(changes))
        return self.get_quiz(quiz_id)

    def delete_quiz(self, quiz_id: uuid.UUID, caller_id: str) -> None:
        quiz = self._get_owned(quiz_id, caller_id, action="delete_quiz")

        attempts = self.db.scalar(select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_id == quiz.id))
        if attempts:
            raise QuizInUse("quiz has recorded attempts; deactivate it instead", quiz_id=str(quiz_id))

        self.db.delete(quiz)
        self.db.commit()
        log.info("quiz deleted: %s by %s", quiz_id, caller_id)

    def toggle_active(self, quiz_id: uuid.UUID, caller_id: str) -> Quiz:
        quiz = self._get_owned(quiz_id, caller_id, action="toggle_active")
        quiz.is_active = not quiz.is_active
        self.db.commit()
        log.info("quiz %s active=%s", quiz_id, quiz.is_active)
        return self.get_quiz(quiz_id)

    def add_question(self, quiz_id: uuid.UUID, draft: Any, caller_id: str) -> Quiz:
        quiz = self._get_owned(quiz_id, caller_id, action="add_question")
        validate_question(draft)

        next_position = max((q.position for q in quiz.questions), default=-1) + 1
        quiz.questions.append(_build_question(draft, position=next_position))
        self.db.commit()

        log.info("question added to quiz %s", quiz_id)
        return self.get_quiz(quiz_id)

    def remove_question(self, quiz_id: uuid.UUID, question_id: uuid.UUID, caller_id: str) -> Quiz:
        quiz = self._get_owned(quiz_id, caller_id, action="remove_question")

        question = next((q for q in quiz.questions if q.id == question_id), None)
        if question is None:
            raise QuestionNotFound(quiz_id=str(quiz_id), question_id=str(question_id))

        # Once attempts exist the question list is append-only; results are rebuilt from it.
        attempts = self.db.scalar(select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_id == quiz.id))
        if attempts:
            raise QuizInUse("quiz has recorded attempts; questions can only be added", question_id=str(question_id))

        quiz.questions.remove(question)
        self.db.commit()

        log.info("question %s removed from quiz %s", question_id, quiz_id)
        return self.get_quiz(quiz_id)

    def _summaries(self, quizzes: list[Quiz]) -> list[dict]:
        ids = [q.id for q in quizzes]
        if not ids:
            return []

        question_counts = dict(
            self.db.execute(
                select(Question.quiz_id, func.count(Question.id)).where(Question.quiz_id.in_(ids)).group_by(Question.quiz_id)
            ).all()
        )
        attempt_counts = dict(
            self.db.execute(
                select(QuizAttempt.quiz_id, func.count(QuizAttempt.id))
                .where(QuizAttempt.quiz_id.in_(ids))
                .group_by(QuizAttempt.quiz_id)
            ).all()
        )

        return [
            {
                "id": str(q.id),
                "title": q.title,
                "description": q.description,
                "owner_id": q.owner_id,
                "created_at": iso(q.created_at),
                "is_active": bool(q.is_active),
                "question_count": int(question_counts.get(q.id, 0)),
                "attempt_count": int(attempt_counts.get(q.id, 0)),
            }
            for q in quizzes
        ]

    def list_quizzes(self, *, active_only: bool = False) -> list[dict]:
        stmt = select(Quiz).order_by(Quiz.created_at.desc())
        if active_only:
            stmt = stmt.where(Quiz.is_active == True)  # noqa: E712
        return self._summaries(list(self.db.scalars(stmt)))

    def list_owned_quizzes(self, owner_id: str) -> list[dict]:
        stmt = select(Quiz).where(Quiz.owner_id == owner_id).order_by(Quiz.created_at.desc())
        return self._summaries(list(self.db.scalars(stmt)))
