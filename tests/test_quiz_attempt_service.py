import logging
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TimeLimitExceededError,
)
from app.models import LessonProgress, Notification, QuizAttempt
from app.schemas.quiz import QuestionUpdate
from app.schemas.quiz_attempt import QuizAttemptSubmit
from app.services.points import PointsService
from app.services.quiz import QuizService
from app.services.quiz_attempt import QuizAttemptService
from app.services.quiz_grader import grade_quiz
from app.utils.timing import utcnow
from conftest import make_quiz, make_user


def submission(attempt, quiz, mc="b", tf="true"):
    mc_question, tf_question = quiz.questions
    return QuizAttemptSubmit(
        attempt_id=attempt.id,
        answers=[
            {"question_id": mc_question.id, "selected_answer": mc},
            {"question_id": tf_question.id, "selected_answer": tf},
        ],
    )


def test_start_requires_enrollment(db, learner, quiz):
    with pytest.raises(ForbiddenError, match="Not enrolled"):
        QuizAttemptService(db).start_attempt(quiz.id, learner.id)


def test_start_unknown_quiz(db, learner):
    with pytest.raises(NotFoundError):
        QuizAttemptService(db).start_attempt(999, learner.id)


def test_start_assigns_increasing_ordinals(db, learner, enrollment, quiz):
    service = QuizAttemptService(db)

    first = service.start_attempt(quiz.id, learner.id)
    second = service.start_attempt(quiz.id, learner.id)

    assert (first.attempt_number, second.attempt_number) == (1, 2)
    assert first.state == "IN_PROGRESS"
    assert first.enrollment_id == enrollment.id


def test_third_start_fails_when_two_attempts_allowed(db, learner, enrollment, lessons):
    quiz = make_quiz(db, lessons[0], max_attempts=2)
    service = QuizAttemptService(db)

    attempt = service.start_attempt(quiz.id, learner.id)
    service.submit_attempt(quiz.id, learner.id, submission(attempt, quiz, mc="a"))
    service.start_attempt(quiz.id, learner.id)

    with pytest.raises(ForbiddenError, match="Maximum attempts"):
        service.start_attempt(quiz.id, learner.id)


def test_passing_submission_grades_and_runs_side_effects(
    db, learner, enrollment, quiz, lessons
):
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)

    attempt, result = service.submit_attempt(
        quiz.id, learner.id, submission(attempt, quiz)
    )

    assert result.percentage == 100
    assert result.passed is True
    assert attempt.state == "COMPLETED"
    assert attempt.score_percentage == 100
    assert attempt.auto_submitted is False
    assert len(attempt.question_snapshot) == 2
    assert attempt.answers[0]["selected_answer"] == "b"

    assert PointsService(db).get_points(learner.id) == settings.quiz_pass_points
    titles = [n.title for n in db.query(Notification).filter_by(user_id=learner.id)]
    assert "Quiz Passed!" in titles

    progress = (
        db.query(LessonProgress)
        .filter_by(enrollment_id=enrollment.id, lesson_id=lessons[0].id)
        .one()
    )
    assert progress.status == "COMPLETED"
    db.refresh(enrollment)
    assert enrollment.progress_percentage == 25
    assert enrollment.status == "ENROLLED"


def test_failed_submission_reports_attempts_left(db, learner, enrollment, lessons):
    quiz = make_quiz(db, lessons[0], max_attempts=3)
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)

    _, result = service.submit_attempt(
        quiz.id, learner.id, submission(attempt, quiz, mc="a", tf="false")
    )

    assert result.passed is False
    assert PointsService(db).get_points(learner.id) == 0
    notification = (
        db.query(Notification)
        .filter_by(user_id=learner.id, title="Quiz Completed")
        .one()
    )
    assert "2 attempt(s) remaining" in notification.message
    assert db.query(LessonProgress).count() == 0


def test_resubmitting_a_completed_attempt_conflicts(db, learner, enrollment, quiz):
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)
    service.submit_attempt(quiz.id, learner.id, submission(attempt, quiz))

    with pytest.raises(ConflictError, match="already submitted"):
        service.submit_attempt(quiz.id, learner.id, submission(attempt, quiz))

    assert PointsService(db).get_points(learner.id) == settings.quiz_pass_points


def test_cannot_submit_someone_elses_attempt(db, learner, enrollment, quiz):
    other = make_user(db, "other@example.com")
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)

    with pytest.raises(ForbiddenError):
        service.submit_attempt(quiz.id, other.id, submission(attempt, quiz))


def test_submit_against_another_quiz_is_rejected(db, learner, enrollment, quiz, lessons):
    other_quiz = make_quiz(db, lessons[1], title="Other")
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)

    with pytest.raises(BadRequestError, match="this quiz"):
        service.submit_attempt(other_quiz.id, learner.id, submission(attempt, quiz))


def test_submit_unknown_attempt(db, learner, enrollment, quiz):
    with pytest.raises(NotFoundError):
        QuizAttemptService(db).submit_attempt(
            quiz.id, learner.id, QuizAttemptSubmit(attempt_id=12345, answers=[])
        )


def test_duplicate_and_foreign_question_ids_are_rejected(db, learner, enrollment, quiz):
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)
    question_id = quiz.questions[0].id

    duplicate = QuizAttemptSubmit(
        attempt_id=attempt.id,
        answers=[
            {"question_id": question_id, "selected_answer": "a"},
            {"question_id": question_id, "selected_answer": "b"},
        ],
    )
    with pytest.raises(BadRequestError, match="Duplicate"):
        service.submit_attempt(quiz.id, learner.id, duplicate)

    foreign = QuizAttemptSubmit(
        attempt_id=attempt.id,
        answers=[{"question_id": 9999, "selected_answer": "a"}],
    )
    with pytest.raises(BadRequestError, match="not part of this quiz"):
        service.submit_attempt(quiz.id, learner.id, foreign)

    db.refresh(attempt)
    assert attempt.completed_at is None


def test_overdue_attempt_is_auto_submitted(db, learner, enrollment, lessons):
    quiz = make_quiz(db, lessons[0], time_limit_minutes=10)
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)
    attempt.started_at = utcnow() - timedelta(minutes=11)
    db.commit()

    with pytest.raises(TimeLimitExceededError) as exc_info:
        service.submit_attempt(quiz.id, learner.id, submission(attempt, quiz))

    error = exc_info.value
    assert error.result is not None
    assert error.result.percentage == 100
    assert error.to_dict()["auto_submitted"] is True

    stored = db.query(QuizAttempt).filter_by(id=attempt.id).one()
    assert stored.completed_at is not None
    assert stored.auto_submitted is True
    assert stored.time_spent_seconds >= 11 * 60


def test_submission_within_grace_period_is_accepted(db, learner, enrollment, lessons):
    quiz = make_quiz(db, lessons[0], time_limit_minutes=10)
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)
    attempt.started_at = utcnow() - timedelta(minutes=10, seconds=10)
    db.commit()

    attempt, result = service.submit_attempt(
        quiz.id, learner.id, submission(attempt, quiz)
    )

    assert attempt.auto_submitted is False
    assert result.passed is True


def test_questions_are_locked_once_attempted(db, learner, enrollment, quiz):
    QuizAttemptService(db).start_attempt(quiz.id, learner.id)

    with pytest.raises(ConflictError):
        QuizService(db).update_question(
            quiz.id, quiz.questions[0].id, QuestionUpdate(points=5)
        )


def test_attempt_stats(db, learner, enrollment, lessons):
    quiz = make_quiz(db, lessons[0], max_attempts=3)
    service = QuizAttemptService(db)

    first = service.start_attempt(quiz.id, learner.id)
    service.submit_attempt(quiz.id, learner.id, submission(first, quiz, mc="a"))
    second = service.start_attempt(quiz.id, learner.id)
    service.submit_attempt(quiz.id, learner.id, submission(second, quiz))

    stats = service.get_attempt_stats(quiz.id, learner.id)

    assert stats.total_attempts == 2
    assert stats.best_score == 100
    assert stats.average_score == 75
    assert stats.attempts_remaining == 1
    assert stats.passed is True


def test_attempt_just_past_the_grace_period_is_overdue(db, learner, enrollment, lessons):
    quiz = make_quiz(db, lessons[0], time_limit_minutes=10)
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)
    attempt.started_at = utcnow() - timedelta(seconds=630, milliseconds=900)
    db.commit()

    with pytest.raises(TimeLimitExceededError):
        service.submit_attempt(quiz.id, learner.id, submission(attempt, quiz))

    stored = db.query(QuizAttempt).filter_by(id=attempt.id).one()
    assert stored.auto_submitted is True
    assert stored.time_spent_seconds >= 630


def test_failing_side_effects_keep_the_graded_attempt(
    db, learner, enrollment, quiz, monkeypatch, caplog
):
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)
    payload = submission(attempt, quiz)

    def broken_add(instance, *args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "add", broken_add)

    with caplog.at_level(logging.ERROR):
        attempt, result = service.submit_attempt(quiz.id, learner.id, payload)

    assert result.passed is True
    stored = db.query(QuizAttempt).filter_by(id=attempt.id).one()
    assert stored.completed_at is not None
    assert stored.score_percentage == 100
    assert stored.passed is True

    assert PointsService(db).get_points(learner.id) == 0
    assert db.query(Notification).filter_by(user_id=learner.id).count() == 0
    assert db.query(LessonProgress).count() == 0
    assert "Failed to award" in caplog.text


def test_losing_a_concurrent_submission_conflicts(
    db, learner, enrollment, quiz, monkeypatch
):
    service = QuizAttemptService(db)
    attempt = service.start_attempt(quiz.id, learner.id)
    attempt_id = attempt.id
    payload = submission(attempt, quiz)
    real_grade_quiz = grade_quiz

    def grade_while_another_request_completes(*args, **kwargs):
        db.query(QuizAttempt).filter_by(id=attempt_id).update(
            {QuizAttempt.completed_at: utcnow(), QuizAttempt.score_percentage: 0},
            synchronize_session=False,
        )
        db.commit()
        return real_grade_quiz(*args, **kwargs)

    monkeypatch.setattr(
        "app.services.quiz_attempt.grade_quiz", grade_while_another_request_completes
    )

    with pytest.raises(ConflictError, match="already submitted"):
        service.submit_attempt(quiz.id, learner.id, payload)

    stored = db.query(QuizAttempt).filter_by(id=attempt_id).one()
    assert stored.completed_at is not None
    assert stored.score_percentage == 0
    assert PointsService(db).get_points(learner.id) == 0
    assert db.query(Notification).filter_by(title="Quiz Passed!").count() == 0
