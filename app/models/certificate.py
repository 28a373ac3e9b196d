# app/models/certificate.py
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


class Certificate(Base):
    """Issuance record only; rendering the certificate happens elsewhere."""

    __tablename__ = "certificates"
    __table_args__ = (
        # At most one certificate per learner and course, enforced at write time
        UniqueConstraint("user_id", "course_id", name="uq_certificate_user_course"),
    )

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    enrollment_id = Column(
        Integer, ForeignKey("course_enrollments.id"), nullable=False, index=True
    )

    verification_code = Column(String(64), unique=True, nullable=False, index=True)
    issued_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expires_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Certificate(id={self.id}, user_id={self.user_id}, course_id={self.course_id})>"
