# app/models/quiz.py
import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from app.core.database import Base, JSONVariant


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"
    FILL_BLANK = "FILL_BLANK"
    MATCHING = "MATCHING"
    ESSAY = "ESSAY"


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships (course_id is denormalised from the lesson for fast lookups)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Quiz settings
    passing_score = Column(Integer, default=70, nullable=False)  # percentage
    time_limit_minutes = Column(Integer, nullable=True)  # null = untimed
    max_attempts = Column(Integer, nullable=True)  # null = unlimited
    randomize_questions = Column(Boolean, default=False, nullable=False)
    show_answers = Column(Boolean, default=True, nullable=False)
    show_results_immediately = Column(Boolean, default=True, nullable=False)

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
        return f"<Quiz(id={self.id}, title='{self.title}', lesson_id={self.lesson_id})>"


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)

    question_text = Column(Text, nullable=False)
    question_type = Column(String(30), nullable=False)  # see QuestionType
    points = Column(Integer, default=1, nullable=False)

    # MULTIPLE_CHOICE options: [{"id": "1", "text": "...", "is_correct": true}, ...]
    options = Column(JSONVariant, nullable=True)

    # Format depends on question_type (MATCHING stores a JSON object string)
    correct_answer = Column(Text, nullable=True)
    explanation = Column(Text, nullable=True)

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
        return f"<Question(id={self.id}, type='{self.question_type}', quiz_id={self.quiz_id})>"
