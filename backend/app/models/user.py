from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class UserStats(Base):
    """Derived per-user totals, rebuilt from quiz_attempts after every submission."""

    __tablename__ = "user_stats"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    total_attempts: Mapped[int] = mapped_column(Integer, default=0)
    average_score: Mapped[float] = mapped_column(Float, default=0.0)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
