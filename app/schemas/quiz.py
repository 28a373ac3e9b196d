# app/schemas/quiz.py
from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.quiz import QuestionType

# ==================== Question Schemas ====================


class QuestionOption(BaseModel):
    """A MULTIPLE_CHOICE option. ``is_correct`` is stripped for learners."""

    id: Union[str, int]
    text: str
    is_correct: bool = False


class QuestionOptionForAttempt(BaseModel):
    id: Union[str, int]
    text: str


class QuestionBase(BaseModel):
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType
    points: int = Field(default=1, ge=0)
    options: Optional[List[QuestionOption]] = None
    correct_answer: Optional[str] = Field(
        None,
        description="Expected answer; 'true'/'false' for TRUE_FALSE, a JSON object string for MATCHING",
    )
    explanation: Optional[str] = None
    position: int = Field(default=0, ge=0)


class QuestionCreate(QuestionBase):
    @model_validator(mode="after")
    def check_options(self):
        if self.options:
            correct = [option for option in self.options if option.is_correct]
            if len(correct) > 1:
                raise ValueError("Only one option can be flagged correct")
        if self.question_type == QuestionType.TRUE_FALSE and self.correct_answer not in (
            None,
            "true",
            "false",
        ):
            raise ValueError("TRUE_FALSE correct_answer must be 'true' or 'false'")
        return self


class QuestionUpdate(BaseModel):
    question_text: Optional[str] = Field(None, min_length=1)
    question_type: Optional[QuestionType] = None
    points: Optional[int] = Field(None, ge=0)
    options: Optional[List[QuestionOption]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)


class QuestionResponse(QuestionBase):
    """Question with its answer key - AUTHORS ONLY"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_id: int
    question_type: str


class QuestionForAttempt(BaseModel):
    """Question as shown to a learner - WITHOUT correct answer"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    question_text: str
    question_type: str
    points: int
    options: Optional[List[QuestionOptionForAttempt]] = None


class QuestionSnapshot(BaseModel):
    """Frozen copy of a question as it was graded."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    question_text: str
    question_type: str
    points: int = 0
    options: Optional[Any] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


# ==================== Quiz Schemas ====================


class QuizBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    passing_score: int = Field(default=70, ge=0, le=100, description="Passing score percentage")
    time_limit_minutes: Optional[int] = Field(
        None, ge=1, description="Quiz time limit in minutes (null = untimed)"
    )
    max_attempts: Optional[int] = Field(
        None, ge=1, description="Maximum attempts allowed (null = unlimited)"
    )
    randomize_questions: bool = False
    show_answers: bool = True
    show_results_immediately: bool = True


class QuizCreate(QuizBase):
    lesson_id: int
    questions: List[QuestionCreate] = []


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    time_limit_minutes: Optional[int] = Field(None, ge=1)
    max_attempts: Optional[int] = Field(None, ge=1)
    randomize_questions: Optional[bool] = None
    show_answers: Optional[bool] = None
    show_results_immediately: Optional[bool] = None


class QuizResponse(QuizBase):
    """Quiz settings without questions"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    lesson_id: int
    created_at: datetime
    updated_at: datetime


class QuizDetailResponse(QuizResponse):
    """Quiz with answer keys - AUTHORS ONLY"""

    questions: List[QuestionResponse] = []


class QuizForAttemptResponse(QuizResponse):
    """Quiz as served to a learner, questions WITHOUT answers"""

    questions: List[QuestionForAttempt] = []
