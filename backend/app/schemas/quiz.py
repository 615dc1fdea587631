from __future__ import annotations

from pydantic import BaseModel, Field


class ChoiceCreate(BaseModel):
    text: str = Field(max_length=500)
    is_correct: bool = False


class QuestionCreate(BaseModel):
    text: str = Field(max_length=1000)
    explanation: str | None = Field(default=None, max_length=1000)
    image_url: str | None = Field(default=None, max_length=2000)
    # Count and correctness are checked by the question validator, not here.
    choices: list[ChoiceCreate] = Field(default_factory=list)


class QuizCreate(BaseModel):
    title: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    questions: list[QuestionCreate] = Field(default_factory=list)


class QuizUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    is_active: bool | None = None


class ChoiceOut(BaseModel):
    id: str
    text: str
    is_correct: bool


class QuestionOut(BaseModel):
    id: str
    position: int
    text: str
    explanation: str | None
    image_url: str | None
    choices: list[ChoiceOut]


class QuizOut(BaseModel):
    id: str
    title: str
    description: str | None
    owner_id: str
    created_at: str
    is_active: bool
    question_count: int
    questions: list[QuestionOut]


class QuizSummary(BaseModel):
    id: str
    title: str
    description: str | None
    owner_id: str
    created_at: str
    is_active: bool
    question_count: int
    attempt_count: int


class QuizListResponse(BaseModel):
    items: list[QuizSummary]
