# app/routers/course.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_optional_user, require_roles
from app.models.user import User
from app.schemas.course import (
    CourseCreate,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
    LessonCreate,
    LessonResponse,
    LessonUpdate,
)
from app.schemas.quiz import QuizResponse
from app.services.course import CourseService
from app.services.quiz import QuizService

router = APIRouter(
    prefix="/courses",
    tags=["Courses"],
    responses={404: {"description": "Not found"}},
)


# ==================== Course Endpoints ====================


@router.post("/", response_model=CourseResponse, status_code=201)
def create_course(
    course_in: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    """
    Create a new course.
    Instructors and admins only.
    """
    service = CourseService(db)
    return service.create_course(course_in, current_user.id)


@router.get("/", response_model=CourseListResponse)
def list_courses(
    page: int = Query(1, ge=1),
    size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = Query(None, description="Search in title and description"),
    include_unpublished: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    List courses with pagination.
    Unpublished courses are only listed for authors who ask for them.
    """
    is_author = bool(current_user and current_user.role in settings.authoring_roles)
    service = CourseService(db)
    courses, pagination = service.get_courses(
        page, size, search, published_only=not (include_unpublished and is_author)
    )
    return {"courses": courses, **pagination}


@router.get("/{course_id}", response_model=CourseResponse)
def get_course(course_id: int, db: Session = Depends(get_db)):
    """Get a course with its lessons"""
    service = CourseService(db)
    return service.get_course(course_id)


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: int,
    course_in: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    service = CourseService(db)
    return service.update_course(course_id, course_in)


@router.delete("/{course_id}", status_code=204)
def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    """
    Delete a course and everything under it.
    Admin only.
    """
    service = CourseService(db)
    service.delete_course(course_id)
    return None


# ==================== Lesson Endpoints ====================


@router.post("/{course_id}/lessons", response_model=LessonResponse, status_code=201)
def create_lesson(
    course_id: int,
    lesson_in: LessonCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    service = CourseService(db)
    return service.create_lesson(course_id, lesson_in)


@router.get("/{course_id}/lessons", response_model=List[LessonResponse])
def list_lessons(course_id: int, db: Session = Depends(get_db)):
    """Get all lessons of a course ordered by position"""
    service = CourseService(db)
    service.get_course(course_id)
    return service.get_lessons(course_id)


@router.get("/{course_id}/lessons/{lesson_id}", response_model=LessonResponse)
def get_lesson(course_id: int, lesson_id: int, db: Session = Depends(get_db)):
    service = CourseService(db)
    return service.get_lesson(lesson_id, course_id)


@router.patch("/{course_id}/lessons/{lesson_id}", response_model=LessonResponse)
def update_lesson(
    course_id: int,
    lesson_id: int,
    lesson_in: LessonUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    service = CourseService(db)
    return service.update_lesson(course_id, lesson_id, lesson_in)


@router.delete("/{course_id}/lessons/{lesson_id}", status_code=204)
def delete_lesson(
    course_id: int,
    lesson_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles()),
):
    service = CourseService(db)
    service.delete_lesson(course_id, lesson_id)
    return None


@router.get(
    "/{course_id}/lessons/{lesson_id}/quizzes", response_model=List[QuizResponse]
)
def list_lesson_quizzes(
    course_id: int, lesson_id: int, db: Session = Depends(get_db)
):
    """Quizzes attached to a lesson (settings only, no questions)"""
    CourseService(db).get_lesson(lesson_id, course_id)
    return QuizService(db).get_lesson_quizzes(lesson_id)
