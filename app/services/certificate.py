# app/services/certificate.py
import logging
import secrets
import string
import time
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.course_enrollment import CourseEnrollment, EnrollmentStatus
from app.schemas.certificate import CertificateVerification
from app.services.notification import NotificationService
from app.utils.timing import as_naive_utc, utcnow

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_verification_code() -> str:
    """``CERT-<unix ms>-<9 random uppercase alphanumerics>``"""
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(9))
    return f"CERT-{int(time.time() * 1000)}-{suffix}"


class CertificateService:
    def __init__(self, db: Session):
        self.db = db

    def get_existing(self, user_id: int, course_id: int) -> Optional[Certificate]:
        return (
            self.db.query(Certificate)
            .filter(
                and_(
                    Certificate.user_id == user_id,
                    Certificate.course_id == course_id,
                )
            )
            .first()
        )

    def ensure_certificate(
        self, enrollment: CourseEnrollment
    ) -> Tuple[Certificate, bool]:
        """
        Issue the certificate for a completed enrollment unless one exists.

        The (user, course) unique constraint decides concurrent races: the
        losing insert is rolled back and the winner's row is returned.

        Returns:
            ``(certificate, created)``
        """
        existing = self.get_existing(enrollment.user_id, enrollment.course_id)
        if existing:
            return existing, False

        issued_at = utcnow()
        certificate = Certificate(
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
            verification_code=generate_verification_code(),
            issued_at=issued_at,
            expires_at=(
                issued_at + timedelta(days=settings.certificate_validity_days)
                if settings.certificate_validity_days
                else None
            ),
        )

        try:
            self.db.add(certificate)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_existing(enrollment.user_id, enrollment.course_id)
            if existing is None:
                raise
            logger.info(
                f"Certificate for user {enrollment.user_id} course {enrollment.course_id} "
                "was issued concurrently"
            )
            return existing, False

        self.db.refresh(certificate)
        logger.info(
            f"Issued certificate {certificate.id} ({certificate.verification_code}) "
            f"to user {certificate.user_id} for course {certificate.course_id}"
        )

        course = self.db.query(Course).filter(Course.id == certificate.course_id).first()
        NotificationService(self.db).on_certificate_issued(
            certificate.user_id,
            course.title if course else "your course",
            certificate.id,
        )
        return certificate, True

    def issue(self, user_id: int, course_id: int) -> Certificate:
        """Manual issuance; refuses when a certificate already exists."""
        if self.get_existing(user_id, course_id):
            raise ConflictError("Certificate already issued for this user and course")

        enrollment = (
            self.db.query(CourseEnrollment)
            .filter(
                and_(
                    CourseEnrollment.user_id == user_id,
                    CourseEnrollment.course_id == course_id,
                )
            )
            .first()
        )
        if not enrollment:
            raise NotFoundError("Enrollment not found for this user and course")
        if enrollment.status != EnrollmentStatus.COMPLETED.value:
            raise BadRequestError("Course has not been completed")

        certificate, created = self.ensure_certificate(enrollment)
        if not created:
            raise ConflictError("Certificate already issued for this user and course")
        return certificate

    def get_user_certificates(self, user_id: int) -> List[Certificate]:
        return (
            self.db.query(Certificate)
            .filter(Certificate.user_id == user_id)
            .order_by(Certificate.issued_at.desc())
            .all()
        )

    def get_certificate(self, certificate_id: int, user_id: int) -> Certificate:
        certificate = (
            self.db.query(Certificate)
            .filter(
                Certificate.id == certificate_id, Certificate.user_id == user_id
            )
            .first()
        )
        if not certificate:
            raise NotFoundError("Certificate not found")
        return certificate

    def verify(self, code: str) -> CertificateVerification:
        certificate = (
            self.db.query(Certificate)
            .options(
                joinedload(Certificate.user),
                joinedload(Certificate.course),
                joinedload(Certificate.enrollment),
            )
            .filter(Certificate.verification_code == code)
            .first()
        )
        if not certificate:
            raise NotFoundError(
                "Invalid verification code. Please check the code and try again."
            )

        expires_at = as_naive_utc(certificate.expires_at)
        return CertificateVerification(
            verified=True,
            is_expired=bool(expires_at and expires_at < utcnow()),
            verification_code=certificate.verification_code,
            issued_at=certificate.issued_at,
            expires_at=certificate.expires_at,
            recipient_name=certificate.user.full_name,
            course_title=certificate.course.title,
            completed_at=(
                certificate.enrollment.completed_at if certificate.enrollment else None
            ),
        )
