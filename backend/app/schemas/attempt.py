from __future__ import annotations

from pydantic import BaseModel, Field


class AttemptStartRequest(BaseModel):
    quiz_id: str


class AnswerSubmit(BaseModel):
    question_id: str
    choice_id: str


class AttemptSubmitRequest(BaseModel):
    answers: list[AnswerSubmit] = Field(default_factory=list)


class ChoicePublic(BaseModel):
    id: str
    text: str


class QuestionPublic(BaseModel):
    id: str
    text: str
    image_url: str | None
    choices: list[ChoicePublic]


class AttemptOut(BaseModel):
    id: str
    quiz_id: str
    quiz_title: str | None
    user_id: str
    started_at: str
    completed_at: str | None
    score: int
    is_completed: bool


class AttemptStartResponse(BaseModel):
    attempt: AttemptOut
    questions: list[QuestionPublic]


class AttemptListResponse(BaseModel):
    items: list[AttemptOut]


class QuestionResultOut(BaseModel):
    question_id: str
    question_text: str
    explanation: str | None
    selected_choice_id: str | None
    selected_choice_text: str | None
    correct_choice_id: str | None
    correct_choice_text: str | None
    is_correct: bool


class QuizResultOut(BaseModel):
    attempt_id: str
    quiz_id: str
    quiz_title: str | None
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    score: int
    started_at: str
    completed_at: str
    duration_seconds: float
    question_results: list[QuestionResultOut]


class LeaderboardEntry(BaseModel):
    rank: int
    attempt_id: str
    user_id: str
    score: int
    started_at: str
    completed_at: str
    duration_seconds: float


class LeaderboardResponse(BaseModel):
    quiz_id: str
    items: list[LeaderboardEntry]
