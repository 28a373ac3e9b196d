# app/schemas/quiz_attempt.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Submission Schemas ====================


class SubmittedAnswer(BaseModel):
    """User's answer for a quiz question"""

    question_id: int
    selected_answer: Optional[str] = Field(
        None, max_length=50000, description="Submitted value (null if unanswered)"
    )


class QuizAttemptSubmit(BaseModel):
    """Submit quiz attempt"""

    attempt_id: int
    answers: List[SubmittedAnswer]


# ==================== Grading Schemas ====================


class QuestionResult(BaseModel):
    question_id: int
    question_text: str
    user_answer: str
    correct_answer: Optional[str] = None
    is_correct: bool
    points: int
    earned_points: int
    explanation: Optional[str] = None


class QuizGradeResult(BaseModel):
    total_points: int
    earned_points: int
    percentage: int
    passed: bool
    passing_score: int
    correct_count: int
    total_questions: int
    detailed_results: List[QuestionResult]


# ==================== Attempt Schemas ====================


class QuizAttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_id: int
    user_id: int
    enrollment_id: int
    attempt_number: int
    state: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    score_percentage: Optional[int] = None
    earned_points: Optional[int] = None
    total_points: Optional[int] = None
    passed: Optional[bool] = None
    time_spent_seconds: Optional[int] = None
    auto_submitted: bool = False


class QuizAttemptDetailResponse(QuizAttemptResponse):
    """Attempt with per-question results (shown based on quiz settings)"""

    results: Optional[List[QuestionResult]] = None


class StartAttemptResponse(BaseModel):
    attempt: QuizAttemptResponse
    attempts_used: int
    attempts_remaining: Optional[int] = None
    time_limit_minutes: Optional[int] = None


class SubmitAttemptResponse(BaseModel):
    attempt: QuizAttemptResponse
    result: Optional[QuizGradeResult] = None
    message: str


class QuizAttemptListResponse(BaseModel):
    attempts: List[QuizAttemptResponse]
    total: int
    page: int
    size: int
    total_pages: int


class QuizAttemptStats(BaseModel):
    """Statistics for a user's quiz attempts"""

    quiz_id: int
    total_attempts: int
    best_score: Optional[int] = None
    average_score: Optional[float] = None
    last_attempt_at: Optional[datetime] = None
    attempts_remaining: Optional[int] = None
    passed: bool = False
