# app/services/course_enrollment.py
import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.orm import Session, joinedload

from app.core.decorator import db_exception
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.course_enrollment import CourseEnrollment, EnrollmentStatus
from app.schemas.course_enrollment import CourseEnrollmentCreate
from app.services.notification import NotificationService
from app.utils.timing import utcnow

logger = logging.getLogger(__name__)


class CourseEnrollmentService:
    def __init__(self, db: Session):
        self.db = db

    @db_exception
    def enroll_user(
        self, user_id: int, enrollment_data: CourseEnrollmentCreate
    ) -> CourseEnrollment:
        """Enroll a user in a course. A second enrollment is a conflict."""
        course = (
            self.db.query(Course).filter(Course.id == enrollment_data.course_id).first()
        )

        if not course:
            raise NotFoundError("Course not found")

        if self.get_enrollment(user_id, course.id):
            raise ConflictError("Already enrolled in this course")

        enrollment = CourseEnrollment(
            user_id=user_id,
            course_id=course.id,
            status=EnrollmentStatus.ENROLLED.value,
            progress_percentage=0,
            enrolled_at=utcnow(),
        )

        self.db.add(enrollment)
        self.db.commit()
        self.db.refresh(enrollment)

        logger.info(f"User {user_id} enrolled in course {course.id}")
        NotificationService(self.db).on_enrollment(user_id, course.title, course.id)

        return enrollment

    def get_user_enrollments(
        self, user_id: int, page: int = 1, size: int = 20
    ) -> Tuple[List[CourseEnrollment], dict]:
        """
        Get all courses a user is enrolled in with pagination.
        Returns enrollments with course details.
        """
        query = (
            self.db.query(CourseEnrollment)
            .options(joinedload(CourseEnrollment.course))
            .filter(CourseEnrollment.user_id == user_id)
        )

        total = query.count()

        offset = (page - 1) * size
        enrollments = (
            query.order_by(CourseEnrollment.enrolled_at.desc(), CourseEnrollment.id.desc())
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

        return enrollments, pagination

    def get_enrollment(
        self, user_id: int, course_id: int
    ) -> Optional[CourseEnrollment]:
        """Get specific enrollment for a user and course"""
        return (
            self.db.query(CourseEnrollment)
            .filter(
                and_(
                    CourseEnrollment.user_id == user_id,
                    CourseEnrollment.course_id == course_id,
                )
            )
            .first()
        )

    def get_enrollment_by_id(self, enrollment_id: int, user_id: int) -> CourseEnrollment:
        enrollment = (
            self.db.query(CourseEnrollment)
            .options(joinedload(CourseEnrollment.course))
            .filter(CourseEnrollment.id == enrollment_id)
            .first()
        )
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        if enrollment.user_id != user_id:
            raise ForbiddenError("This enrollment does not belong to you")
        return enrollment

    @db_exception
    def unenroll_user(self, user_id: int, course_id: int) -> bool:
        """Remove user's enrollment from a course"""
        enrollment = self.get_enrollment(user_id, course_id)

        if not enrollment:
            raise NotFoundError("Enrollment not found")

        if enrollment.status == EnrollmentStatus.COMPLETED.value and (
            self.db.query(Certificate)
            .filter(
                and_(
                    Certificate.user_id == user_id,
                    Certificate.course_id == course_id,
                )
            )
            .first()
        ):
            raise ConflictError(
                "Cannot unenroll from completed course with certificate. "
                "Contact administrator."
            )

        self.db.delete(enrollment)
        self.db.commit()
        logger.info(f"User {user_id} unenrolled from course {course_id}")

        return True
