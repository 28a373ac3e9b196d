import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Per-user notifications.

    ``notify`` and the ``on_*`` triggers are fire-and-forget: a failed insert is
    logged and rolled back but never propagates, so grading and progress that
    were already committed stay committed.
    """

    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        link_url: Optional[str] = None,
    ) -> Optional[Notification]:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link_url=link_url,
        )
        try:
            self.db.add(notification)
            self.db.commit()
            self.db.refresh(notification)
            return notification
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                f"Failed to create '{title}' notification for user {user_id}",
                exc_info=True,
            )
            return None

    # ==================== Triggers ====================

    def on_enrollment(self, user_id: int, course_title: str, course_id: int):
        return self.notify(
            user_id,
            "enrollment",
            "Enrollment Successful",
            f"You have been enrolled in {course_title}",
            f"/courses/{course_id}",
        )

    def on_lesson_completion(self, user_id: int, lesson_title: str, course_id: int):
        return self.notify(
            user_id,
            "lesson",
            "Lesson Completed",
            f"You have completed: {lesson_title}",
            f"/courses/{course_id}",
        )

    def on_course_completion(self, user_id: int, course_title: str, course_id: int):
        return self.notify(
            user_id,
            "achievement",
            "Course Completed!",
            f"Congratulations! You have completed {course_title}",
            f"/courses/{course_id}",
        )

    def on_quiz_pass(
        self,
        user_id: int,
        quiz_title: str,
        score: int,
        points_awarded: int,
        course_id: int,
    ):
        message = f'Congratulations! You passed "{quiz_title}" with a score of {score}%.'
        if points_awarded:
            message += f" You earned {points_awarded} points!"
        return self.notify(
            user_id, "success", "Quiz Passed!", message, f"/courses/{course_id}"
        )

    def on_quiz_fail(
        self,
        user_id: int,
        quiz_title: str,
        score: int,
        passing_score: int,
        attempts_left: Optional[int],
        course_id: int,
    ):
        message = (
            f'You completed "{quiz_title}" with a score of {score}%. '
            f"The passing score is {passing_score}%."
        )
        if attempts_left is None:
            message += " You can try again!"
        elif attempts_left > 0:
            message += f" You have {attempts_left} attempt(s) remaining."
        else:
            message += " No attempts remaining."
        return self.notify(
            user_id, "warning", "Quiz Completed", message, f"/courses/{course_id}"
        )

    def on_certificate_issued(
        self, user_id: int, course_title: str, certificate_id: int
    ):
        return self.notify(
            user_id,
            "achievement",
            "Certificate Issued",
            f"Your certificate for {course_title} is now available",
            f"/certificates/{certificate_id}",
        )

    # ==================== Inbox ====================

    def get_user_notifications(
        self,
        user_id: int,
        skip: int = 0,
        limit: int = 20,
        unread_only: bool = False,
    ) -> Tuple[List[Notification], int]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        total = query.count()
        notifications = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return notifications, total

    def unread_count(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def mark_read(self, user_id: int, notification_id: int) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(
                Notification.id == notification_id, Notification.user_id == user_id
            )
            .first()
        )
        if not notification:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated
