# app/routers/quiz.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_user, require_roles
from app.core.exceptions import TimeLimitExceededError
from app.core.limiter import limiter
from app.models.user import User
from app.schemas.quiz import (
    QuestionCreate,
    QuestionResponse,
    QuestionUpdate,
    QuizCreate,
    QuizDetailResponse,
    QuizForAttemptResponse,
    QuizResponse,
    QuizUpdate,
)
from app.schemas.quiz_attempt import (
    QuizAttemptListResponse,
    QuizAttemptResponse,
    QuizAttemptStats,
    QuizAttemptSubmit,
    StartAttemptResponse,
    SubmitAttemptResponse,
)
from app.services.quiz import QuizService
from app.services.quiz_attempt import QuizAttemptService, attempts_left, visible_grade

router = APIRouter(
    prefix="/quizzes",
    tags=["Quizzes"],
    responses={404: {"description": "Not found"}},
)


# ==================== Authoring Endpoints ====================


@router.post("/", response_model=QuizDetailResponse, status_code=201)
def create_quiz(
    quiz_in: QuizCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    """
    Create a quiz on a lesson, optionally with its questions.
    Instructors and admins only.
    """
    service = QuizService(db)
    quiz = service.create_quiz(quiz_in)
    return service.get_quiz(quiz.id)


@router.get("/{quiz_id}/manage", response_model=QuizDetailResponse)
def get_quiz_with_answers(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    """Quiz with answer keys, for authors"""
    return QuizService(db).get_quiz(quiz_id)


@router.patch("/{quiz_id}", response_model=QuizResponse)
def update_quiz(
    quiz_id: int,
    quiz_in: QuizUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    return QuizService(db).update_quiz(quiz_id, quiz_in)


@router.delete("/{quiz_id}", status_code=204)
def delete_quiz(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    """Delete a quiz that nobody has attempted yet"""
    QuizService(db).delete_quiz(quiz_id)
    return None


@router.post(
    "/{quiz_id}/questions", response_model=QuestionResponse, status_code=201
)
def add_question(
    quiz_id: int,
    question_in: QuestionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    return QuizService(db).add_question(quiz_id, question_in)


@router.patch("/{quiz_id}/questions/{question_id}", response_model=QuestionResponse)
def update_question(
    quiz_id: int,
    question_id: int,
    question_in: QuestionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    return QuizService(db).update_question(quiz_id, question_id, question_in)


@router.delete("/{quiz_id}/questions/{question_id}", status_code=204)
def delete_question(
    quiz_id: int,
    question_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    QuizService(db).delete_question(quiz_id, question_id)
    return None


# ==================== Learner Endpoints ====================


@router.get("/{quiz_id}", response_model=QuizForAttemptResponse)
def get_quiz(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get a quiz for taking it.
    Correct answers and explanations are never included.
    """
    return QuizService(db).get_quiz_for_learner(quiz_id)


@router.post("/{quiz_id}/attempts", response_model=StartAttemptResponse, status_code=201)
def start_attempt(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Start a new attempt.
    The learner must be enrolled in the quiz's course and have attempts left.
    """
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz_id, current_user.id)
    quiz = attempt.quiz

    return StartAttemptResponse(
        attempt=QuizAttemptResponse.model_validate(attempt),
        attempts_used=attempt.attempt_number,
        attempts_remaining=attempts_left(quiz.max_attempts, attempt.attempt_number),
        time_limit_minutes=quiz.time_limit_minutes,
    )


@router.post("/{quiz_id}/submit", response_model=SubmitAttemptResponse)
@limiter.limit(settings.rate_limit_submit)
def submit_attempt(
    request: Request,
    quiz_id: int,
    submit_in: QuizAttemptSubmit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Submit answers for an in-progress attempt and get it graded.

    Answers submitted after the time limit (plus grace period) are still
    graded and stored, but the request fails with 403 and the graded result
    in the error body.
    """
    service = QuizAttemptService(db)
    try:
        attempt, result = service.submit_attempt(quiz_id, current_user.id, submit_in)
    except TimeLimitExceededError as e:
        e.result = visible_grade(e.attempt.quiz, e.result)
        raise

    quiz = attempt.quiz
    message = (
        "Congratulations! You passed the quiz."
        if result.passed
        else "Quiz submitted. You did not reach the passing score."
    )
    return SubmitAttemptResponse(
        attempt=QuizAttemptResponse.model_validate(attempt),
        result=visible_grade(quiz, result),
        message=message,
    )


@router.get("/{quiz_id}/attempts", response_model=QuizAttemptListResponse)
def list_my_attempts(
    quiz_id: int,
    page: int = Query(1, ge=1),
    size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Current user's attempts on a quiz, newest first"""
    service = QuizAttemptService(db)
    attempts, pagination = service.get_user_attempts(
        quiz_id, current_user.id, page, size
    )
    return {"attempts": attempts, **pagination}


@router.get("/{quiz_id}/attempts/stats", response_model=QuizAttemptStats)
def get_my_attempt_stats(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return QuizAttemptService(db).get_attempt_stats(quiz_id, current_user.id)
