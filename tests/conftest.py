import os

# Must be set before anything imports app.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["PRODUCTION"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, SessionLocal, engine, get_db
from app.core.security import jwt_manager
from app.models import (
    Course,
    CourseEnrollment,
    Lesson,
    Question,
    QuestionType,
    Quiz,
    User,
)
from app.utils.timing import utcnow
from main import app


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, email, role="student", full_name=None):
    user = User(email=email, full_name=full_name or email.split("@")[0], role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {jwt_manager.create_access_token(user)}"}


@pytest.fixture
def learner(db):
    return make_user(db, "learner@example.com", full_name="Lena Learner")


@pytest.fixture
def instructor(db):
    return make_user(db, "instructor@example.com", role="instructor")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role="admin")


@pytest.fixture
def course(db, instructor):
    course = Course(
        title="Python Basics",
        description="Intro course",
        instructor_id=instructor.id,
        is_published=True,
    )
    db.add(course)
    db.flush()
    for position in range(4):
        db.add(
            Lesson(course_id=course.id, title=f"Lesson {position + 1}", position=position)
        )
    db.commit()
    db.refresh(course)
    return course


@pytest.fixture
def lessons(db, course):
    return (
        db.query(Lesson)
        .filter(Lesson.course_id == course.id)
        .order_by(Lesson.position)
        .all()
    )


@pytest.fixture
def enrollment(db, learner, course):
    enrollment = CourseEnrollment(
        user_id=learner.id,
        course_id=course.id,
        status="ENROLLED",
        progress_percentage=0,
        enrolled_at=utcnow(),
    )
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment


def make_quiz(db, lesson, **overrides):
    """Two-question quiz: a 1-point MULTIPLE_CHOICE and a 1-point TRUE_FALSE."""
    quiz = Quiz(
        course_id=lesson.course_id,
        lesson_id=lesson.id,
        title=overrides.pop("title", "Checkpoint"),
        passing_score=overrides.pop("passing_score", 70),
        **overrides,
    )
    db.add(quiz)
    db.flush()
    db.add_all(
        [
            Question(
                quiz_id=quiz.id,
                question_text="Which keyword defines a function?",
                question_type=QuestionType.MULTIPLE_CHOICE.value,
                points=1,
                options=[
                    {"id": "a", "text": "func", "is_correct": False},
                    {"id": "b", "text": "def", "is_correct": True},
                ],
                explanation="Functions start with def.",
                position=0,
            ),
            Question(
                quiz_id=quiz.id,
                question_text="Lists are mutable.",
                question_type=QuestionType.TRUE_FALSE.value,
                points=1,
                correct_answer="true",
                position=1,
            ),
        ]
    )
    db.commit()
    db.refresh(quiz)
    return quiz


@pytest.fixture
def quiz(db, lessons):
    return make_quiz(db, lessons[0])
