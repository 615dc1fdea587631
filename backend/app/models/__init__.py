from app.models.attempt import QuizAttempt, QuizAttemptAnswer
from app.models.quiz import Choice, Question, Quiz
from app.models.user import UserStats

__all__ = [
    "Quiz",
    "Question",
    "Choice",
    "QuizAttempt",
    "QuizAttemptAnswer",
    "UserStats",
]
