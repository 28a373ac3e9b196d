# app/routers/quiz_attempt.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.quiz_attempt import (
    QuestionResult,
    QuizAttemptDetailResponse,
    QuizAttemptResponse,
)
from app.services.quiz_attempt import QuizAttemptService, visible_results

router = APIRouter(prefix="/quiz-attempts", tags=["Quiz Attempts"])


@router.get("/{attempt_id}", response_model=QuizAttemptDetailResponse)
def get_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get one of your attempts.
    Per-question results follow the quiz's show_results_immediately and
    show_answers settings.
    """
    attempt = QuizAttemptService(db).get_attempt(attempt_id, current_user.id)

    results = None
    if attempt.results:
        results = visible_results(
            attempt.quiz, [QuestionResult(**item) for item in attempt.results]
        )

    return QuizAttemptDetailResponse(
        **QuizAttemptResponse.model_validate(attempt).model_dump(),
        results=results,
    )
