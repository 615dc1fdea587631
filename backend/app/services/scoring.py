from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from app.models.quiz import Choice, Question


@dataclass(frozen=True)
class QuestionOutcome:
    question_id: uuid.UUID
    question_text: str
    explanation: str | None
    selected_choice_id: uuid.UUID | None
    selected_choice_text: str | None
    correct_choice_id: uuid.UUID | None
    correct_choice_text: str | None
    is_correct: bool


@dataclass(frozen=True)
class ScoreResult:
    score: int
    correct: int
    total: int
    outcomes: list[QuestionOutcome] = field(default_factory=list)

    @property
    def incorrect(self) -> int:
        return self.total - self.correct


def _as_uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def percent_round_half_up(correct: int, total: int) -> int:
    """round(100 * correct / total) with halves rounded up, in exact integer math."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def selections_by_question(answers: Iterable[Any]) -> dict[uuid.UUID, uuid.UUID]:
    """Map question id -> chosen choice id. The first answer for a question wins."""
    out: dict[uuid.UUID, uuid.UUID] = {}
    for a in answers or []:
        qid = _as_uuid(getattr(a, "question_id", None))
        cid = _as_uuid(getattr(a, "choice_id", None))
        if qid is None or cid is None or qid in out:
            continue
        out[qid] = cid
    return out


def score_answers(questions: Sequence[Question], answers: Iterable[Any]) -> ScoreResult:
    selected = selections_by_question(answers)

    outcomes: list[QuestionOutcome] = []
    correct = 0
    for q in questions:
        correct_choice = q.correct_choice()

        chosen: Choice | None = None
        cid = selected.get(q.id)
        if cid is not None:
            chosen = next((c for c in q.choices if c.id == cid), None)

        ok = chosen is not None and correct_choice is not None and chosen.id == correct_choice.id
        if ok:
            correct += 1

        outcomes.append(
            QuestionOutcome(
                question_id=q.id,
                question_text=q.text,
                explanation=q.explanation,
                selected_choice_id=chosen.id if chosen else None,
                selected_choice_text=chosen.text if chosen else None,
                correct_choice_id=correct_choice.id if correct_choice else None,
                correct_choice_text=correct_choice.text if correct_choice else None,
                is_correct=ok,
            )
        )

    total = len(questions)
    return ScoreResult(score=percent_round_half_up(correct, total), correct=correct, total=total, outcomes=outcomes)
