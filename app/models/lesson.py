# app/models/lesson.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from app.core.database import Base


class Lesson(Base):
    """A lesson is the unit a course's completion percentage is counted in."""

    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)

    # Basic Info
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    # Course relationship
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    # Order/Position in course
    position = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<Lesson(id={self.id}, title='{self.title}', course_id={self.course_id})>"
