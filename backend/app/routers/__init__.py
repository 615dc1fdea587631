from app.routers import attempts, health, me, quizzes

__all__ = [
    "attempts",
    "health",
    "me",
    "quizzes",
]
