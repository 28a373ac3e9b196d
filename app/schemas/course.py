# app/schemas/course.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Lesson Schemas ====================


class LessonBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    position: int = Field(default=0, ge=0)


class LessonCreate(LessonBase):
    pass


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    position: Optional[int] = Field(None, ge=0)


class LessonResponse(LessonBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    created_at: datetime
    updated_at: datetime


# ==================== Course Schemas ====================


class CourseBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_published: bool = False


class CourseCreate(CourseBase):
    pass


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_published: Optional[bool] = None


class CourseResponse(CourseBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    instructor_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    lessons: List[LessonResponse] = []


class CourseListResponse(BaseModel):
    courses: List[CourseResponse]
    total: int
    page: int
    size: int
    total_pages: int
