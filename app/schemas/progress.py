# app/schemas/progress.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class LessonProgressUpdate(BaseModel):
    enrollment_id: int
    lesson_id: int
    status: Literal["IN_PROGRESS", "COMPLETED"] = "COMPLETED"
    time_spent_seconds: Optional[int] = Field(
        None, ge=0, description="Seconds to add to the time already spent"
    )


class LessonProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    enrollment_id: int
    lesson_id: int
    status: str
    time_spent_seconds: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class EnrollmentRollup(BaseModel):
    """Outcome of recomputing an enrollment's completion"""

    enrollment_id: int
    completed_lessons: int
    total_lessons: int
    progress_percentage: int
    status: str
    course_completed: bool = False
    certificate_id: Optional[int] = None


class ProgressUpdateResponse(BaseModel):
    progress: LessonProgressResponse
    enrollment: EnrollmentRollup


class LessonProgressListResponse(BaseModel):
    progress: List[LessonProgressResponse]
    count: int
