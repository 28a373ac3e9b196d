# app/services/progress.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, NotFoundError
from app.models.course import Course
from app.models.course_enrollment import CourseEnrollment, EnrollmentStatus
from app.models.lesson import Lesson
from app.models.lesson_progress import LessonProgress, LessonProgressStatus
from app.schemas.progress import EnrollmentRollup, LessonProgressUpdate
from app.services.certificate import CertificateService
from app.services.notification import NotificationService
from app.utils.scoring import percentage
from app.utils.timing import utcnow

logger = logging.getLogger(__name__)

COMPLETED = LessonProgressStatus.COMPLETED.value


class ProgressService:
    def __init__(self, db: Session):
        self.db = db
        self.notifications = NotificationService(db)

    # ==================== Lesson progress ====================

    def record_lesson_progress(
        self, user_id: int, progress_in: LessonProgressUpdate
    ) -> Tuple[LessonProgress, EnrollmentRollup]:
        """Create or update a learner's progress on a lesson, then roll up."""
        enrollment = (
            self.db.query(CourseEnrollment)
            .filter(CourseEnrollment.id == progress_in.enrollment_id)
            .first()
        )
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        if enrollment.user_id != user_id:
            raise ForbiddenError("Invalid enrollment")

        lesson = (
            self.db.query(Lesson)
            .filter(
                and_(
                    Lesson.id == progress_in.lesson_id,
                    Lesson.course_id == enrollment.course_id,
                )
            )
            .first()
        )
        if not lesson:
            raise NotFoundError("Lesson not found in this course")

        progress, newly_completed = self._upsert_progress(
            enrollment,
            lesson.id,
            progress_in.status,
            progress_in.time_spent_seconds,
        )

        if newly_completed:
            self.notifications.on_lesson_completion(
                user_id, lesson.title, lesson.course_id
            )

        rollup = self.recompute_enrollment(enrollment)
        return progress, rollup

    def complete_lesson(self, enrollment: CourseEnrollment, lesson_id: int) -> bool:
        """Mark a lesson completed for an enrollment. Returns True on first completion."""
        _, newly_completed = self._upsert_progress(enrollment, lesson_id, COMPLETED)
        return newly_completed

    def _upsert_progress(
        self,
        enrollment: CourseEnrollment,
        lesson_id: int,
        status: str,
        time_spent_seconds: Optional[int] = None,
    ) -> Tuple[LessonProgress, bool]:
        now = utcnow()
        progress = self._get_progress(enrollment.id, lesson_id)

        if progress is None:
            progress = LessonProgress(
                user_id=enrollment.user_id,
                enrollment_id=enrollment.id,
                lesson_id=lesson_id,
                status=LessonProgressStatus.IN_PROGRESS.value,
                time_spent_seconds=0,
                started_at=now,
            )
            self.db.add(progress)
            try:
                self.db.flush()
            except IntegrityError:
                # Another request created the row first; update that one instead
                self.db.rollback()
                progress = self._get_progress(enrollment.id, lesson_id)

        was_completed = progress.status == COMPLETED
        if time_spent_seconds:
            progress.time_spent_seconds = (progress.time_spent_seconds or 0) + time_spent_seconds
        if progress.started_at is None:
            progress.started_at = now
        # Completed lessons stay completed
        if status == COMPLETED and not was_completed:
            progress.status = COMPLETED
            progress.completed_at = now

        enrollment.last_accessed_at = now
        self.db.commit()
        self.db.refresh(progress)
        return progress, status == COMPLETED and not was_completed

    def _get_progress(self, enrollment_id: int, lesson_id: int) -> Optional[LessonProgress]:
        return (
            self.db.query(LessonProgress)
            .filter(
                and_(
                    LessonProgress.enrollment_id == enrollment_id,
                    LessonProgress.lesson_id == lesson_id,
                )
            )
            .first()
        )

    # ==================== Rollup ====================

    def recompute_enrollment(self, enrollment: CourseEnrollment) -> EnrollmentRollup:
        """
        Re-derive completion from every completed lesson of the enrollment.

        The stored percentage only moves up, and the ENROLLED -> COMPLETED
        transition is a conditional update so it happens exactly once. A
        completed enrollment always ends with exactly one certificate.
        """
        total_lessons = (
            self.db.query(func.count(Lesson.id))
            .filter(Lesson.course_id == enrollment.course_id)
            .scalar()
            or 0
        )
        completed_lessons = (
            self.db.query(func.count(func.distinct(LessonProgress.lesson_id)))
            .join(Lesson, Lesson.id == LessonProgress.lesson_id)
            .filter(
                and_(
                    LessonProgress.enrollment_id == enrollment.id,
                    LessonProgress.status == COMPLETED,
                    Lesson.course_id == enrollment.course_id,
                )
            )
            .scalar()
            or 0
        )
        progress_percentage = percentage(completed_lessons, total_lessons)

        self.db.query(CourseEnrollment).filter(
            and_(
                CourseEnrollment.id == enrollment.id,
                CourseEnrollment.progress_percentage < progress_percentage,
            )
        ).update(
            {CourseEnrollment.progress_percentage: progress_percentage},
            synchronize_session=False,
        )

        course_completed = False
        if progress_percentage >= 100:
            course_completed = (
                self.db.query(CourseEnrollment)
                .filter(
                    and_(
                        CourseEnrollment.id == enrollment.id,
                        CourseEnrollment.status != EnrollmentStatus.COMPLETED.value,
                    )
                )
                .update(
                    {
                        CourseEnrollment.status: EnrollmentStatus.COMPLETED.value,
                        CourseEnrollment.completed_at: utcnow(),
                    },
                    synchronize_session=False,
                )
                == 1
            )

        self.db.commit()
        self.db.refresh(enrollment)

        logger.info(
            f"Enrollment {enrollment.id}: {completed_lessons}/{total_lessons} lessons, "
            f"{enrollment.progress_percentage}% ({enrollment.status})"
        )

        if course_completed:
            course = (
                self.db.query(Course).filter(Course.id == enrollment.course_id).first()
            )
            self.notifications.on_course_completion(
                enrollment.user_id, course.title, course.id
            )

        certificate_id = None
        if enrollment.status == EnrollmentStatus.COMPLETED.value:
            certificate, _ = CertificateService(self.db).ensure_certificate(enrollment)
            certificate_id = certificate.id

        return EnrollmentRollup(
            enrollment_id=enrollment.id,
            completed_lessons=completed_lessons,
            total_lessons=total_lessons,
            progress_percentage=enrollment.progress_percentage,
            status=enrollment.status,
            course_completed=course_completed,
            certificate_id=certificate_id,
        )

    # ==================== Queries ====================

    def get_user_progress(
        self,
        user_id: int,
        enrollment_id: Optional[int] = None,
        course_id: Optional[int] = None,
        lesson_id: Optional[int] = None,
    ) -> List[LessonProgress]:
        query = (
            self.db.query(LessonProgress)
            .join(Lesson, Lesson.id == LessonProgress.lesson_id)
            .filter(LessonProgress.user_id == user_id)
        )
        if enrollment_id:
            query = query.filter(LessonProgress.enrollment_id == enrollment_id)
        if course_id:
            query = query.filter(Lesson.course_id == course_id)
        if lesson_id:
            query = query.filter(LessonProgress.lesson_id == lesson_id)
        return query.order_by(Lesson.position.asc(), Lesson.id.asc()).all()
