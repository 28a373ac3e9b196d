import re
from datetime import timedelta

import pytest

from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.models import Certificate, CourseEnrollment
from app.services.certificate import CertificateService, generate_verification_code
from app.services.course_enrollment import CourseEnrollmentService
from app.services.points import PointsService
from app.utils.timing import utcnow


def mark_completed(db, enrollment):
    enrollment.status = "COMPLETED"
    enrollment.progress_percentage = 100
    enrollment.completed_at = utcnow()
    db.commit()


def test_verification_code_format():
    assert re.fullmatch(r"CERT-\d{13}-[A-Z0-9]{9}", generate_verification_code())


def test_ensure_certificate_is_idempotent(db, enrollment):
    mark_completed(db, enrollment)
    service = CertificateService(db)

    first, created = service.ensure_certificate(enrollment)
    second, created_again = service.ensure_certificate(enrollment)

    assert created is True
    assert created_again is False
    assert first.id == second.id
    assert db.query(Certificate).count() == 1


def test_manual_issue_requires_completed_enrollment(db, learner, course, enrollment):
    with pytest.raises(BadRequestError):
        CertificateService(db).issue(learner.id, course.id)


def test_manual_issue_without_enrollment(db, learner, course):
    with pytest.raises(NotFoundError):
        CertificateService(db).issue(learner.id, course.id)


def test_manual_issue_twice_conflicts(db, learner, course, enrollment):
    mark_completed(db, enrollment)
    service = CertificateService(db)

    certificate = service.issue(learner.id, course.id)

    assert certificate.enrollment_id == enrollment.id
    with pytest.raises(ConflictError):
        service.issue(learner.id, course.id)


def test_verify_reports_holder_and_expiry(db, learner, course, enrollment):
    mark_completed(db, enrollment)
    service = CertificateService(db)
    certificate, _ = service.ensure_certificate(enrollment)

    verification = service.verify(certificate.verification_code)

    assert verification.verified is True
    assert verification.is_expired is False
    assert verification.recipient_name == learner.full_name
    assert verification.course_title == course.title

    certificate.expires_at = utcnow() - timedelta(days=1)
    db.commit()
    assert service.verify(certificate.verification_code).is_expired is True


def test_verify_unknown_code(db):
    with pytest.raises(NotFoundError):
        CertificateService(db).verify("CERT-0-NOPE")


def test_points_award_is_keyed_by_source(db, learner):
    service = PointsService(db)

    assert service.award(learner.id, 50, "Passed quiz", "quiz_attempt:1") is True
    assert service.award(learner.id, 50, "Passed quiz", "quiz_attempt:1") is False
    assert service.award(learner.id, 50, "Passed quiz", "quiz_attempt:2") is True

    assert service.get_points(learner.id) == 100
    leaderboard = service.get_leaderboard(5)
    assert leaderboard[0].user_id == learner.id
    assert leaderboard[0].rank == 1


def test_certified_course_cannot_be_unenrolled(db, learner, course, enrollment):
    mark_completed(db, enrollment)
    CertificateService(db).ensure_certificate(enrollment)

    with pytest.raises(ConflictError, match="certificate"):
        CourseEnrollmentService(db).unenroll_user(learner.id, course.id)

    assert db.query(CourseEnrollment).filter_by(id=enrollment.id).count() == 1
    certificate = db.query(Certificate).one()
    assert CertificateService(db).verify(certificate.verification_code).completed_at


def test_unenroll_without_certificate(db, learner, course, enrollment):
    assert CourseEnrollmentService(db).unenroll_user(learner.id, course.id) is True
    assert db.query(CourseEnrollment).count() == 0
