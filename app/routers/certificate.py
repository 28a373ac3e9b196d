# app/routers/certificate.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import get_current_user, require_roles
from app.models.user import User
from app.schemas.certificate import (
    CertificateIssue,
    CertificateListResponse,
    CertificateResponse,
    CertificateVerification,
)
from app.services.certificate import CertificateService

router = APIRouter(prefix="/certificates", tags=["Certificates"])


@router.get("/", response_model=CertificateListResponse)
def list_my_certificates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    certificates = CertificateService(db).get_user_certificates(current_user.id)
    return {"certificates": certificates, "total": len(certificates)}


@router.get("/verify/{verification_code}", response_model=CertificateVerification)
def verify_certificate(verification_code: str, db: Session = Depends(get_db)):
    """
    Public certificate verification by code.
    No authentication required.
    """
    return CertificateService(db).verify(verification_code)


@router.get("/{certificate_id}", response_model=CertificateResponse)
def get_certificate(
    certificate_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return CertificateService(db).get_certificate(certificate_id, current_user.id)


@router.post("/", response_model=CertificateResponse, status_code=201)
def issue_certificate(
    certificate_in: CertificateIssue,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    """
    Manually issue a certificate for a completed enrollment.
    Admin only. Fails with 409 if the learner already has one.
    """
    return CertificateService(db).issue(
        certificate_in.user_id, certificate_in.course_id
    )
