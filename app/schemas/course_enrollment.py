# app/schemas/course_enrollment.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Course Enrollment Schemas ====================


class CourseEnrollmentCreate(BaseModel):
    """Schema for enrolling in a course"""

    course_id: int = Field(..., description="Course ID to enroll in")


class CourseEnrollmentResponse(BaseModel):
    """Schema for course enrollment response"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    course_id: int
    status: str
    progress_percentage: int
    enrolled_at: datetime
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Include course details
    course_title: Optional[str] = None


class EnrolledCoursesListResponse(BaseModel):
    """Response for list of enrolled courses with pagination"""

    enrollments: List[CourseEnrollmentResponse]
    total: int
    page: int
    size: int
    total_pages: int
