from __future__ import annotations


class AssessmentError(Exception):
    """Caller-facing failure raised by the assessment services.

    `error_code` is the stable machine-readable kind, `status_code` the HTTP
    status the API layer renders it with.
    """

    error_code = "assessment_error"
    status_code = 400
    default_message = "request failed"

    def __init__(self, message: str | None = None, **context) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class InvalidQuiz(AssessmentError):
    error_code = "invalid_quiz"
    status_code = 422
    default_message = "quiz is not valid"


class InvalidQuestion(AssessmentError):
    error_code = "invalid_question"
    status_code = 422
    default_message = "question is not valid"


class InvalidRequest(AssessmentError):
    error_code = "invalid_request"
    status_code = 422
    default_message = "invalid request"


class NotFound(AssessmentError):
    error_code = "not_found"
    status_code = 404
    default_message = "not found"


class QuizNotFound(NotFound):
    error_code = "quiz_not_found"
    default_message = "quiz not found"


class QuestionNotFound(NotFound):
    error_code = "question_not_found"
    default_message = "question not found"


class AttemptNotFound(NotFound):
    # Also raised for attempts owned by someone else.
    error_code = "attempt_not_found"
    default_message = "attempt not found"


class Forbidden(AssessmentError):
    error_code = "forbidden"
    status_code = 403
    default_message = "forbidden"


class QuizInactive(AssessmentError):
    error_code = "quiz_inactive"
    status_code = 409
    default_message = "quiz is not active"


class QuizEmpty(AssessmentError):
    error_code = "quiz_empty"
    status_code = 409
    default_message = "quiz has no questions"


class QuizInUse(AssessmentError):
    error_code = "quiz_in_use"
    status_code = 409
    default_message = "quiz content is referenced by recorded attempts"


class AlreadyCompleted(AssessmentError):
    error_code = "already_completed"
    status_code = 409
    default_message = "attempt already completed"


class AttemptNotCompleted(AssessmentError):
    error_code = "attempt_not_completed"
    status_code = 409
    default_message = "attempt is not completed yet"


class AnswerCountMismatch(AssessmentError):
    error_code = "answer_count_mismatch"
    status_code = 422
    default_message = "number of answers does not match number of questions"
