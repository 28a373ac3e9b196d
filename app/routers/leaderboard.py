# app/routers/leaderboard.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.leaderboard import LeaderboardResponse, MyPointsResponse
from app.services.points import PointsService

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.get("/", response_model=LeaderboardResponse)
def get_leaderboard(
    limit: int = Query(10, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    """Top learners by points earned"""
    return {"entries": PointsService(db).get_leaderboard(limit)}


@router.get("/me", response_model=MyPointsResponse)
def get_my_points(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    points = PointsService(db).get_points(current_user.id)
    return {"user_id": current_user.id, "points": points}
