# app/models/relations.py

from sqlalchemy.orm import relationship

# Import all relevant models
from .certificate import Certificate
from .course import Course
from .course_enrollment import CourseEnrollment
from .lesson import Lesson
from .lesson_progress import LessonProgress
from .notification import Notification
from .quiz import Question, Quiz
from .quiz_attempt import QuizAttempt
from .user import User
from .user_points import PointsTransaction, UserPoints


def setup_relationships():
    """
    Configure all SQLAlchemy relationships between models.
    """

    # --- Course System Relationships ---

    # 1. Course to Lessons (One-to-Many)
    Course.lessons = relationship(
        "Lesson",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Lesson.position",
    )
    Lesson.course = relationship("Course", back_populates="lessons")

    # 2. Lesson to Quizzes (One-to-Many)
    Lesson.quizzes = relationship(
        "Quiz",
        back_populates="lesson",
        cascade="all, delete-orphan",
    )
    Quiz.lesson = relationship("Lesson", back_populates="quizzes")

    # 3. Course to Quizzes (One-to-Many) - direct reference
    Course.quizzes = relationship("Quiz", back_populates="course", viewonly=True)
    Quiz.course = relationship("Course", back_populates="quizzes", viewonly=True)

    # 4. Quiz to Questions (One-to-Many)
    Quiz.questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by=[Question.position, Question.id],
    )
    Question.quiz = relationship("Quiz", back_populates="questions")

    # --- Enrollment & Progress Relationships ---

    # 5. Course to Enrollments (One-to-Many)
    Course.enrollments = relationship(
        "CourseEnrollment",
        back_populates="course",
        cascade="all, delete-orphan",
    )
    CourseEnrollment.course = relationship("Course", back_populates="enrollments")

    # 6. User to Enrollments (One-to-Many)
    User.enrollments = relationship(
        "CourseEnrollment",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    CourseEnrollment.user = relationship("User", back_populates="enrollments")

    # 7. Enrollment to LessonProgress (One-to-Many)
    CourseEnrollment.lesson_progress = relationship(
        "LessonProgress",
        back_populates="enrollment",
        cascade="all, delete-orphan",
    )
    LessonProgress.enrollment = relationship(
        "CourseEnrollment", back_populates="lesson_progress"
    )
    LessonProgress.lesson = relationship("Lesson")

    # --- Quiz Attempt Relationships ---

    # 8. Quiz to QuizAttempts (One-to-Many)
    Quiz.attempts = relationship(
        "QuizAttempt",
        back_populates="quiz",
        cascade="all, delete-orphan",
    )
    QuizAttempt.quiz = relationship("Quiz", back_populates="attempts")

    # 9. User to QuizAttempts (One-to-Many)
    User.quiz_attempts = relationship(
        "QuizAttempt",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    QuizAttempt.user = relationship("User", back_populates="quiz_attempts")

    # 10. Enrollment to QuizAttempts (One-to-Many)
    CourseEnrollment.quiz_attempts = relationship(
        "QuizAttempt",
        back_populates="enrollment",
        cascade="all, delete-orphan",
    )
    QuizAttempt.enrollment = relationship(
        "CourseEnrollment", back_populates="quiz_attempts"
    )

    # --- Certificates, Notifications, Points ---

    # 11. User to Certificates (One-to-Many)
    User.certificates = relationship(
        "Certificate",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    Certificate.user = relationship("User", back_populates="certificates")
    Certificate.course = relationship("Course")
    Certificate.enrollment = relationship("CourseEnrollment")

    # 12. User to Notifications (One-to-Many)
    User.notifications = relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Notification.created_at.desc()",
    )
    Notification.user = relationship("User", back_populates="notifications")

    # 13. User to Points (One-to-One) and ledger entries
    User.points = relationship(
        "UserPoints",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    UserPoints.user = relationship("User", back_populates="points")
    PointsTransaction.user = relationship("User")
