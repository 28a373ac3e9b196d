# app/models/course_enrollment.py
import enum

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from app.core.database import Base


class EnrollmentStatus(str, enum.Enum):
    ENROLLED = "ENROLLED"
    COMPLETED = "COMPLETED"


class CourseEnrollment(Base):
    """
    Ties a learner to a course and is the single source of truth for
    whether the course is done.
    """

    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # User and Course relationship
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    # Progress tracking
    status = Column(
        String(20), default=EnrollmentStatus.ENROLLED.value, nullable=False
    )
    progress_percentage = Column(Integer, default=0, nullable=False)  # 0-100

    # Timestamps
    enrolled_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<CourseEnrollment(id={self.id}, user_id={self.user_id}, course_id={self.course_id}, status={self.status})>"
