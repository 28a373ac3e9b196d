# app/services/course.py
import math
from typing import List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.orm import Session, selectinload

from app.core.decorator import db_exception
from app.core.exceptions import NotFoundError
from app.models.course import Course
from app.models.lesson import Lesson
from app.schemas.course import CourseCreate, CourseUpdate, LessonCreate, LessonUpdate


class CourseService:
    def __init__(self, db: Session):
        self.db = db

    # ==================== Courses ====================

    def create_course(self, course_in: CourseCreate, instructor_id: int) -> Course:
        """Create a new course (authors only)"""
        course = Course(**course_in.model_dump(), instructor_id=instructor_id)

        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)

        return course

    def get_course(self, course_id: int) -> Course:
        """Get a course by ID"""
        course = (
            self.db.query(Course)
            .options(selectinload(Course.lessons))
            .filter(Course.id == course_id)
            .first()
        )
        if not course:
            raise NotFoundError("Course not found")
        return course

    def get_courses(
        self,
        page: int = 1,
        size: int = 20,
        search: Optional[str] = None,
        published_only: bool = True,
    ) -> Tuple[List[Course], dict]:
        """Get list of courses with pagination and filters"""
        query = self.db.query(Course).options(selectinload(Course.lessons))

        if published_only:
            query = query.filter(Course.is_published.is_(True))

        # Search by title or description
        if search:
            search_pattern = f"%{search}%"
            query = query.filter(
                (Course.title.ilike(search_pattern))
                | (Course.description.ilike(search_pattern))
            )

        total = query.count()

        offset = (page - 1) * size
        courses = (
            query.order_by(Course.created_at.desc(), Course.id.desc())
            .offset(offset)
            .limit(size)
            .all()
        )

        total_pages = math.ceil(total / size) if size > 0 else 0
        pagination = {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": total_pages,
        }

        return courses, pagination

    def update_course(self, course_id: int, course_in: CourseUpdate) -> Course:
        course = self.get_course(course_id)

        for field, value in course_in.model_dump(exclude_unset=True).items():
            setattr(course, field, value)

        self.db.commit()
        self.db.refresh(course)
        return course

    @db_exception
    def delete_course(self, course_id: int) -> bool:
        course = self.get_course(course_id)
        self.db.delete(course)
        self.db.commit()
        return True

    # ==================== Lessons ====================

    def create_lesson(self, course_id: int, lesson_in: LessonCreate) -> Lesson:
        """Create a new lesson in a course"""
        self.get_course(course_id)

        lesson = Lesson(course_id=course_id, **lesson_in.model_dump())

        self.db.add(lesson)
        self.db.commit()
        self.db.refresh(lesson)

        return lesson

    def get_lesson(self, lesson_id: int, course_id: Optional[int] = None) -> Lesson:
        query = self.db.query(Lesson).filter(Lesson.id == lesson_id)
        if course_id:
            query = query.filter(Lesson.course_id == course_id)

        lesson = query.first()
        if not lesson:
            raise NotFoundError("Lesson not found")
        return lesson

    def get_lessons(self, course_id: int) -> List[Lesson]:
        return (
            self.db.query(Lesson)
            .filter(Lesson.course_id == course_id)
            .order_by(Lesson.position.asc(), Lesson.id.asc())
            .all()
        )

    def update_lesson(
        self, course_id: int, lesson_id: int, lesson_in: LessonUpdate
    ) -> Lesson:
        lesson = self.get_lesson(lesson_id, course_id)

        for field, value in lesson_in.model_dump(exclude_unset=True).items():
            setattr(lesson, field, value)

        self.db.commit()
        self.db.refresh(lesson)
        return lesson

    @db_exception
    def delete_lesson(self, course_id: int, lesson_id: int) -> bool:
        lesson = (
            self.db.query(Lesson)
            .filter(and_(Lesson.id == lesson_id, Lesson.course_id == course_id))
            .first()
        )
        if not lesson:
            raise NotFoundError("Lesson not found")

        self.db.delete(lesson)
        self.db.commit()
        return True
