# app/models/quiz_attempt.py
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from app.core.database import Base, JSONVariant


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        # Two concurrent starts cannot both claim the same ordinal
        UniqueConstraint(
            "user_id",
            "quiz_id",
            "enrollment_id",
            "attempt_number",
            name="uq_quiz_attempt_ordinal",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    enrollment_id = Column(
        Integer, ForeignKey("course_enrollments.id"), nullable=False, index=True
    )
    attempt_number = Column(Integer, nullable=False)  # 1-based

    # Attempt data (all null while in progress, never rewritten once completed)
    answers = Column(JSONVariant, nullable=True)  # answers exactly as submitted
    results = Column(JSONVariant, nullable=True)  # graded per-question details
    question_snapshot = Column(JSONVariant, nullable=True)  # questions as graded
    score_percentage = Column(Integer, nullable=True)
    earned_points = Column(Integer, nullable=True)
    total_points = Column(Integer, nullable=True)
    passed = Column(Boolean, nullable=True)
    auto_submitted = Column(Boolean, default=False, nullable=False)

    # Time tracking
    time_spent_seconds = Column(Integer, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def state(self) -> str:
        return "COMPLETED" if self.is_completed else "IN_PROGRESS"

    def __repr__(self):
        return f"<QuizAttempt(id={self.id}, user_id={self.user_id}, score={self.score_percentage})>"
