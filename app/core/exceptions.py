"""
Domain error taxonomy.

Services raise these; main.py renders them as JSON with the matching status
code. Nothing here is retried inside the service layer.
"""

from typing import Any, Optional


class LMSException(Exception):
    error = "Error"
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class NotFoundError(LMSException):
    error = "Not Found"
    status_code = 404


class ForbiddenError(LMSException):
    error = "Forbidden"
    status_code = 403


class ConflictError(LMSException):
    error = "Conflict"
    status_code = 409


class BadRequestError(LMSException):
    error = "Bad Request"
    status_code = 400


class TimeLimitExceededError(LMSException):
    """
    Raised after an overdue attempt has been force-graded and committed.
    Carries the graded attempt so the learner still gets their score.
    """

    error = "Time Limit Exceeded"
    status_code = 403

    def __init__(self, message: str, attempt: Any = None, result: Any = None):
        super().__init__(message)
        self.attempt = attempt
        self.attempt_id = getattr(attempt, "id", None)
        self.result = result

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["auto_submitted"] = True
        data["attempt_id"] = self.attempt_id
        if self.result is not None:
            data["result"] = (
                self.result.model_dump(mode="json")
                if hasattr(self.result, "model_dump")
                else self.result
            )
        return data
