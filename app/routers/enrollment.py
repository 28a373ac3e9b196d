# app/routers/enrollment.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.course_enrollment import (
    CourseEnrollmentCreate,
    CourseEnrollmentResponse,
    EnrolledCoursesListResponse,
)
from app.services.course_enrollment import CourseEnrollmentService

router = APIRouter(prefix="/enrollments", tags=["Enrollments"])


def _to_response(enrollment) -> CourseEnrollmentResponse:
    response = CourseEnrollmentResponse.model_validate(enrollment)
    if enrollment.course is not None:
        response.course_title = enrollment.course.title
    return response


@router.post("/", response_model=CourseEnrollmentResponse, status_code=201)
def enroll(
    enrollment_in: CourseEnrollmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Enroll the current user in a course"""
    service = CourseEnrollmentService(db)
    return _to_response(service.enroll_user(current_user.id, enrollment_in))


@router.get("/", response_model=EnrolledCoursesListResponse)
def list_my_enrollments(
    page: int = Query(1, ge=1),
    size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = CourseEnrollmentService(db)
    enrollments, pagination = service.get_user_enrollments(current_user.id, page, size)
    return {
        "enrollments": [_to_response(enrollment) for enrollment in enrollments],
        **pagination,
    }


@router.get("/{enrollment_id}", response_model=CourseEnrollmentResponse)
def get_enrollment(
    enrollment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = CourseEnrollmentService(db)
    return _to_response(service.get_enrollment_by_id(enrollment_id, current_user.id))


@router.delete("/courses/{course_id}", status_code=204)
def unenroll(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Remove the current user's enrollment (and its progress) from a course"""
    CourseEnrollmentService(db).unenroll_user(current_user.id, course_id)
    return None
