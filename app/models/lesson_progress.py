# app/models/lesson_progress.py
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


class LessonProgressStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class LessonProgress(Base):
    __tablename__ = "lesson_progress"
    __table_args__ = (
        UniqueConstraint("enrollment_id", "lesson_id", name="uq_progress_enrollment_lesson"),
    )

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    enrollment_id = Column(
        Integer, ForeignKey("course_enrollments.id"), nullable=False, index=True
    )
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=False, index=True)

    status = Column(
        String(20), default=LessonProgressStatus.IN_PROGRESS.value, nullable=False
    )
    time_spent_seconds = Column(Integer, default=0, nullable=False)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<LessonProgress(enrollment_id={self.enrollment_id}, lesson_id={self.lesson_id}, status={self.status})>"
