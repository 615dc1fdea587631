from __future__ import annotations

from pydantic import BaseModel


class UserStatsResponse(BaseModel):
    user_id: str
    total_attempts: int
    average_score: float
