"""
Models package initialization
Import all models and setup relationships
"""

from .certificate import Certificate
from .course import Course
from .course_enrollment import CourseEnrollment, EnrollmentStatus
from .lesson import Lesson
from .lesson_progress import LessonProgress, LessonProgressStatus
from .notification import Notification
from .quiz import Question, QuestionType, Quiz
from .quiz_attempt import QuizAttempt

# Import and setup relationships
from .relations import setup_relationships
from .user import User
from .user_points import PointsTransaction, UserPoints

# Setup all relationships after models are imported
setup_relationships()

# Make models available at package level
__all__ = [
    "Certificate",
    "Course",
    "CourseEnrollment",
    "EnrollmentStatus",
    "Lesson",
    "LessonProgress",
    "LessonProgressStatus",
    "Notification",
    "PointsTransaction",
    "Question",
    "QuestionType",
    "Quiz",
    "QuizAttempt",
    "User",
    "UserPoints",
]
