"""Structural rules for quiz drafts.

The same checks run when a quiz is created and when a question is added to an
existing quiz.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from app.core.errors import InvalidQuestion, InvalidQuiz

MIN_CHOICES = 2
MAX_CHOICES = 6


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def validate_choices(choices: Sequence[Any] | None) -> None:
    items = list(choices or [])
    if not (MIN_CHOICES <= len(items) <= MAX_CHOICES):
        raise InvalidQuestion(
            f"question must have between {MIN_CHOICES} and {MAX_CHOICES} choices",
            choice_count=len(items),
        )

    for idx, choice in enumerate(items, start=1):
        if _blank(getattr(choice, "text", None)):
            raise InvalidQuestion(f"choice {idx} text is required")

    correct = sum(1 for c in items if bool(getattr(c, "is_correct", False)))
    if correct != 1:
        raise InvalidQuestion("question must have exactly one correct choice", correct_count=correct)


def validate_question(question: Any) -> None:
    if _blank(getattr(question, "text", None)):
        raise InvalidQuestion("question text is required")
    validate_choices(getattr(question, "choices", None))


def validate_quiz_draft(draft: Any) -> None:
    if _blank(getattr(draft, "title", None)):
        raise InvalidQuiz("quiz title is required")

    questions = list(getattr(draft, "questions", None) or [])
    if not questions:
        raise InvalidQuiz("quiz must have at least one question")

    for idx, question in enumerate(questions, start=1):
        try:
            validate_question(question)
        except InvalidQuestion as e:
            raise InvalidQuiz(f"question {idx}: {e.message}", question_index=idx) from e
