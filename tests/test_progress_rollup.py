import pytest

from app.core.exceptions import ForbiddenError, NotFoundError
from app.models import Certificate, Lesson, Notification
from app.schemas.progress import LessonProgressUpdate
from app.services.progress import ProgressService
from conftest import make_user


def complete(db, user, enrollment, lesson, **extra):
    return ProgressService(db).record_lesson_progress(
        user.id,
        LessonProgressUpdate(enrollment_id=enrollment.id, lesson_id=lesson.id, **extra),
    )


def test_three_of_four_lessons_is_75_percent(db, learner, enrollment, lessons):
    for lesson in lessons[:3]:
        _, rollup = complete(db, learner, enrollment, lesson)

    assert rollup.completed_lessons == 3
    assert rollup.total_lessons == 4
    assert rollup.progress_percentage == 75
    assert rollup.status == "ENROLLED"
    assert rollup.certificate_id is None
    assert db.query(Certificate).count() == 0


def test_last_lesson_completes_course_and_issues_one_certificate(
    db, learner, enrollment, lessons
):
    for lesson in lessons[:3]:
        complete(db, learner, enrollment, lesson)

    _, rollup = complete(db, learner, enrollment, lessons[3])

    assert rollup.progress_percentage == 100
    assert rollup.status == "COMPLETED"
    assert rollup.course_completed is True
    assert rollup.certificate_id is not None

    # The same completion event processed again changes nothing
    _, again = complete(db, learner, enrollment, lessons[3])
    ProgressService(db).recompute_enrollment(enrollment)

    assert again.course_completed is False
    assert again.certificate_id == rollup.certificate_id
    assert db.query(Certificate).filter_by(user_id=learner.id).count() == 1
    titles = [n.title for n in db.query(Notification).filter_by(user_id=learner.id)]
    assert titles.count("Course Completed!") == 1
    assert titles.count("Certificate Issued") == 1

    db.refresh(enrollment)
    assert enrollment.completed_at is not None


def test_progress_never_decreases(db, learner, enrollment, lessons, course):
    for lesson in lessons[:2]:
        complete(db, learner, enrollment, lesson)

    # New lessons shrink the fresh ratio to 2/6 but not the stored value
    db.add_all(
        [
            Lesson(course_id=course.id, title="Bonus 1", position=4),
            Lesson(course_id=course.id, title="Bonus 2", position=5),
        ]
    )
    db.commit()

    rollup = ProgressService(db).recompute_enrollment(enrollment)

    assert rollup.total_lessons == 6
    assert rollup.progress_percentage == 50
    assert rollup.status == "ENROLLED"


def test_time_spent_accumulates_and_completion_sticks(db, learner, enrollment, lessons):
    complete(db, learner, enrollment, lessons[0], status="IN_PROGRESS", time_spent_seconds=60)
    complete(db, learner, enrollment, lessons[0], status="COMPLETED", time_spent_seconds=30)
    progress, rollup = complete(
        db, learner, enrollment, lessons[0], status="IN_PROGRESS", time_spent_seconds=15
    )

    assert progress.time_spent_seconds == 105
    assert progress.status == "COMPLETED"
    assert rollup.completed_lessons == 1


def test_in_progress_lessons_do_not_count(db, learner, enrollment, lessons):
    _, rollup = complete(db, learner, enrollment, lessons[0], status="IN_PROGRESS")

    assert rollup.completed_lessons == 0
    assert rollup.progress_percentage == 0


def test_foreign_enrollment_is_forbidden(db, learner, enrollment, lessons):
    intruder = make_user(db, "intruder@example.com")

    with pytest.raises(ForbiddenError):
        complete(db, intruder, enrollment, lessons[0])


def test_lesson_from_another_course_is_not_found(db, learner, enrollment):
    with pytest.raises(NotFoundError):
        ProgressService(db).record_lesson_progress(
            learner.id, LessonProgressUpdate(enrollment_id=enrollment.id, lesson_id=999)
        )


def test_course_without_lessons_stays_at_zero(db, learner, enrollment, lessons):
    for lesson in lessons:
        db.delete(lesson)
    db.commit()

    rollup = ProgressService(db).recompute_enrollment(enrollment)

    assert rollup.total_lessons == 0
    assert rollup.progress_percentage == 0
    assert rollup.status == "ENROLLED"
