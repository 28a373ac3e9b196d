# app/schemas/certificate.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CertificateIssue(BaseModel):
    """Manual issuance by an admin"""

    user_id: int
    course_id: int


class CertificateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    course_id: int
    enrollment_id: int
    verification_code: str
    issued_at: datetime
    expires_at: Optional[datetime] = None


class CertificateListResponse(BaseModel):
    certificates: List[CertificateResponse]
    total: int


class CertificateVerification(BaseModel):
    """Public verification result"""

    verified: bool
    is_expired: bool
    verification_code: str
    issued_at: datetime
    expires_at: Optional[datetime] = None
    recipient_name: str
    course_title: str
    completed_at: Optional[datetime] = None
