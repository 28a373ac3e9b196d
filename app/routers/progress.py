# app/routers/progress.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.progress import (
    LessonProgressListResponse,
    LessonProgressResponse,
    LessonProgressUpdate,
    ProgressUpdateResponse,
)
from app.services.progress import ProgressService

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post("/", response_model=ProgressUpdateResponse)
def record_progress(
    progress_in: LessonProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record progress on a lesson.
    Time spent accumulates; a completed lesson stays completed. The
    enrollment's completion percentage is recomputed on every call.
    """
    service = ProgressService(db)
    progress, rollup = service.record_lesson_progress(current_user.id, progress_in)
    return ProgressUpdateResponse(
        progress=LessonProgressResponse.model_validate(progress),
        enrollment=rollup,
    )


@router.get("/", response_model=LessonProgressListResponse)
def get_progress(
    enrollment_id: Optional[int] = Query(None),
    course_id: Optional[int] = Query(None),
    lesson_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = ProgressService(db)
    progress = service.get_user_progress(
        current_user.id, enrollment_id, course_id, lesson_id
    )
    return {"progress": progress, "count": len(progress)}
