# app/services/quiz_attempt.py
import logging
import math
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TimeLimitExceededError,
)
from app.models.course_enrollment import CourseEnrollment
from app.models.quiz import Quiz
from app.models.quiz_attempt import QuizAttempt
from app.schemas.quiz import QuestionSnapshot
from app.schemas.quiz_attempt import (
    QuestionResult,
    QuizAttemptStats,
    QuizAttemptSubmit,
    QuizGradeResult,
    SubmittedAnswer,
)
from app.services.notification import NotificationService
from app.services.points import PointsService
from app.services.progress import ProgressService
from app.services.quiz_grader import answers_to_map, grade_quiz
from app.utils.timing import elapsed, utcnow

logger = logging.getLogger(__name__)


def attempts_left(max_attempts: Optional[int], used: int) -> Optional[int]:
    """Remaining attempts under the quiz ceiling; None means unlimited."""
    if not max_attempts:
        return None
    return max(0, max_attempts - used)


def visible_results(
    quiz: Quiz, results: List[QuestionResult]
) -> Optional[List[QuestionResult]]:
    """Apply the quiz's result visibility flags to per-question results."""
    if not quiz.show_results_immediately:
        return None
    if quiz.show_answers:
        return results
    return [
        result.model_copy(update={"correct_answer": None, "explanation": None})
        for result in results
    ]


def visible_grade(quiz: Quiz, grade: QuizGradeResult) -> QuizGradeResult:
    return grade.model_copy(
        update={"detailed_results": visible_results(quiz, grade.detailed_results) or []}
    )


class QuizAttemptService:
    def __init__(self, db: Session):
        self.db = db

    # ==================== Lifecycle ====================

    def start_attempt(self, quiz_id: int, user_id: int) -> QuizAttempt:
        """Open a new IN_PROGRESS attempt for an enrolled learner"""
        quiz = self._get_quiz(quiz_id)

        enrollment = self._get_enrollment(user_id, quiz.course_id)
        if not enrollment:
            raise ForbiddenError("Not enrolled in this course")

        prior_attempts = self._count_attempts(quiz.id, user_id, enrollment.id)
        if quiz.max_attempts and prior_attempts >= quiz.max_attempts:
            raise ForbiddenError(
                f"Maximum attempts ({quiz.max_attempts}) reached for this quiz"
            )

        quiz_attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz.id,
            enrollment_id=enrollment.id,
            attempt_number=prior_attempts + 1,
            started_at=utcnow(),
            completed_at=None,
        )

        try:
            self.db.add(quiz_attempt)
            self.db.commit()
        except IntegrityError:
            # uq_quiz_attempt_ordinal: a concurrent start took this ordinal
            self.db.rollback()
            raise ConflictError("Another attempt was started at the same time, retry")

        self.db.refresh(quiz_attempt)
        logger.info(
            f"User {user_id} started attempt #{quiz_attempt.attempt_number} "
            f"({quiz_attempt.id}) on quiz {quiz.id}"
        )
        return quiz_attempt

    def submit_attempt(
        self, quiz_id: int, user_id: int, submit_in: QuizAttemptSubmit
    ) -> Tuple[QuizAttempt, QuizGradeResult]:
        """
        Grade and complete an attempt.

        The attempt is graded against a snapshot of the quiz's questions which
        is stored with it. Completion is a conditional update on
        ``completed_at IS NULL`` so only one submission of an attempt can win.

        Raises:
            TimeLimitExceededError: the attempt was overdue; it has still been
                graded, completed and flagged ``auto_submitted`` before raising.
        """
        attempt = (
            self.db.query(QuizAttempt)
            .filter(QuizAttempt.id == submit_in.attempt_id)
            .first()
        )
        if not attempt:
            raise NotFoundError("Quiz attempt not found")
        if attempt.user_id != user_id:
            raise ForbiddenError("This attempt does not belong to you")
        if attempt.quiz_id != quiz_id:
            raise BadRequestError("Attempt does not belong to this quiz")
        if attempt.is_completed:
            raise ConflictError("Quiz attempt already submitted")

        quiz = self._get_quiz(quiz_id)
        snapshot = [QuestionSnapshot.model_validate(q) for q in quiz.questions]
        answers = self._validate_answers(submit_in.answers, snapshot)

        now = utcnow()
        seconds = elapsed(attempt.started_at, now)
        time_spent = int(seconds)
        overdue = bool(
            quiz.time_limit_minutes
            and seconds > quiz.time_limit_minutes * 60 + settings.quiz_time_grace_seconds
        )

        result = grade_quiz(snapshot, answers, quiz.passing_score)

        updated = (
            self.db.query(QuizAttempt)
            .filter(
                and_(
                    QuizAttempt.id == attempt.id,
                    QuizAttempt.completed_at.is_(None),
                )
            )
            .update(
                {
                    QuizAttempt.answers: [a.model_dump() for a in submit_in.answers],
                    QuizAttempt.results: [
                        r.model_dump() for r in result.detailed_results
                    ],
                    QuizAttempt.question_snapshot: [s.model_dump() for s in snapshot],
                    QuizAttempt.score_percentage: result.percentage,
                    QuizAttempt.earned_points: result.earned_points,
                    QuizAttempt.total_points: result.total_points,
                    QuizAttempt.passed: result.passed,
                    QuizAttempt.auto_submitted: overdue,
                    QuizAttempt.time_spent_seconds: time_spent,
                    QuizAttempt.completed_at: now,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            raise ConflictError("Quiz attempt already submitted")

        self.db.commit()
        self.db.refresh(attempt)

        logger.info(
            f"User {user_id} completed attempt {attempt.id} on quiz {quiz.id}: "
            f"{result.percentage}% ({'passed' if result.passed else 'failed'})"
            f"{' [auto-submitted]' if overdue else ''}"
        )

        self._after_completion(attempt, quiz, result)

        if overdue:
            raise TimeLimitExceededError(
                "Time limit exceeded. Your answers were submitted automatically.",
                attempt=attempt,
                result=result,
            )

        return attempt, result

    def _after_completion(
        self, attempt: QuizAttempt, quiz: Quiz, result: QuizGradeResult
    ) -> None:
        # The attempt is already committed; nothing below may undo it.
        notifications = NotificationService(self.db)

        if result.passed:
            awarded = PointsService(self.db).award(
                attempt.user_id,
                settings.quiz_pass_points,
                f"Passed quiz: {quiz.title}",
                f"quiz_attempt:{attempt.id}",
            )
            notifications.on_quiz_pass(
                attempt.user_id,
                quiz.title,
                result.percentage,
                settings.quiz_pass_points if awarded else 0,
                quiz.course_id,
            )
        else:
            notifications.on_quiz_fail(
                attempt.user_id,
                quiz.title,
                result.percentage,
                quiz.passing_score,
                attempts_left(quiz.max_attempts, attempt.attempt_number),
                quiz.course_id,
            )

        try:
            enrollment = (
                self.db.query(CourseEnrollment)
                .filter(CourseEnrollment.id == attempt.enrollment_id)
                .first()
            )
            progress = ProgressService(self.db)
            if result.passed and progress.complete_lesson(enrollment, quiz.lesson_id):
                logger.info(
                    f"Lesson {quiz.lesson_id} completed by passing quiz {quiz.id}"
                )
            progress.recompute_enrollment(enrollment)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                f"Progress rollup failed after attempt {attempt.id}", exc_info=True
            )

    def _validate_answers(
        self, answers: List[SubmittedAnswer], questions: List[QuestionSnapshot]
    ) -> Dict[int, Optional[str]]:
        question_ids = {question.id for question in questions}
        seen = set()

        for answer in answers:
            if answer.question_id in seen:
                raise BadRequestError(
                    f"Duplicate answer for question {answer.question_id}"
                )
            if answer.question_id not in question_ids:
                raise BadRequestError(
                    f"Question {answer.question_id} is not part of this quiz"
                )
            seen.add(answer.question_id)

        return answers_to_map(answers)

    # ==================== Queries ====================

    def get_attempt(self, attempt_id: int, user_id: int) -> QuizAttempt:
        attempt = (
            self.db.query(QuizAttempt)
            .options(selectinload(QuizAttempt.quiz))
            .filter(QuizAttempt.id == attempt_id)
            .first()
        )
        if not attempt:
            raise NotFoundError("Quiz attempt not found")
        if attempt.user_id != user_id:
            raise ForbiddenError("This attempt does not belong to you")
        return attempt

    def get_user_attempts(
        self,
        quiz_id: int,
        user_id: int,
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[QuizAttempt], dict]:
        """Get user's attempts for a quiz, newest first"""
        self._get_quiz(quiz_id)

        query = self.db.query(QuizAttempt).filter(
            and_(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
            )
        )

        total = query.count()

        offset = (page - 1) * size
        attempts = (
            query.order_by(QuizAttempt.attempt_number.desc(), QuizAttempt.id.desc())
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

        return attempts, pagination

    def get_attempt_stats(self, quiz_id: int, user_id: int) -> QuizAttemptStats:
        """Get statistics for a user's quiz attempts"""
        quiz = self._get_quiz(quiz_id)

        # Only completed attempts carry a score
        stats = (
            self.db.query(
                func.count(QuizAttempt.id).label("total_attempts"),
                func.max(QuizAttempt.score_percentage).label("best_score"),
                func.avg(QuizAttempt.score_percentage).label("average_score"),
                func.max(QuizAttempt.completed_at).label("last_attempt_at"),
            )
            .filter(
                and_(
                    QuizAttempt.quiz_id == quiz_id,
                    QuizAttempt.user_id == user_id,
                    QuizAttempt.completed_at.isnot(None),
                )
            )
            .first()
        )

        passed = (
            self.db.query(QuizAttempt.id)
            .filter(
                and_(
                    QuizAttempt.quiz_id == quiz_id,
                    QuizAttempt.user_id == user_id,
                    QuizAttempt.passed.is_(True),
                )
            )
            .first()
            is not None
        )

        enrollment = self._get_enrollment(user_id, quiz.course_id)
        used = (
            self._count_attempts(quiz.id, user_id, enrollment.id) if enrollment else 0
        )

        return QuizAttemptStats(
            quiz_id=quiz_id,
            total_attempts=stats.total_attempts or 0,
            best_score=stats.best_score,
            average_score=(
                round(float(stats.average_score), 2)
                if stats.average_score is not None
                else None
            ),
            last_attempt_at=stats.last_attempt_at,
            attempts_remaining=attempts_left(quiz.max_attempts, used),
            passed=passed,
        )

    # ==================== Helpers ====================

    def _get_quiz(self, quiz_id: int) -> Quiz:
        quiz = (
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions))
            .filter(Quiz.id == quiz_id)
            .first()
        )
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    def _get_enrollment(self, user_id: int, course_id: int) -> Optional[CourseEnrollment]:
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

    def _count_attempts(self, quiz_id: int, user_id: int, enrollment_id: int) -> int:
        return (
            self.db.query(func.count(QuizAttempt.id))
            .filter(
                and_(
                    QuizAttempt.quiz_id == quiz_id,
                    QuizAttempt.user_id == user_id,
                    QuizAttempt.enrollment_id == enrollment_id,
                )
            )
            .scalar()
            or 0
        )
