# app/services/points.py
import logging
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.cache import cache_delete, cache_get_json, cache_set_json
from app.core.config import settings
from app.models.user import User
from app.models.user_points import PointsTransaction, UserPoints
from app.schemas.leaderboard import LeaderboardEntry

logger = logging.getLogger(__name__)

LEADERBOARD_CACHE_KEY = "leaderboard:top"


class PointsService:
    def __init__(self, db: Session):
        self.db = db

    def award(self, user_id: int, points: int, reason: str, source_key: str) -> bool:
        """
        Add points to a learner's total, at most once per ``source_key``.

        Returns False when the award was already made (or could not be
        recorded); failures are logged, never raised.
        """
        try:
            self.db.add(
                PointsTransaction(
                    user_id=user_id,
                    points=points,
                    reason=reason,
                    source_key=source_key,
                )
            )
            self.db.flush()

            ledger = (
                self.db.query(UserPoints).filter(UserPoints.user_id == user_id).first()
            )
            if ledger is None:
                ledger = UserPoints(user_id=user_id, points=0)
                self.db.add(ledger)
            ledger.points = (ledger.points or 0) + points

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Points for '{source_key}' already awarded, skipping")
            return False
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                f"Failed to award {points} points to user {user_id}", exc_info=True
            )
            return False

        logger.info(f"Awarded {points} points to user {user_id} ({reason})")
        self._invalidate_leaderboard()
        return True

    def get_points(self, user_id: int) -> int:
        ledger = self.db.query(UserPoints).filter(UserPoints.user_id == user_id).first()
        return ledger.points if ledger else 0

    def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        cached = cache_get_json(LEADERBOARD_CACHE_KEY)
        if cached is not None:
            return [LeaderboardEntry(**entry) for entry in cached[:limit]]

        rows = (
            self.db.query(UserPoints, User)
            .join(User, User.id == UserPoints.user_id)
            .order_by(UserPoints.points.desc(), UserPoints.user_id.asc())
            .limit(settings.max_page_size)
            .all()
        )
        entries = [
            LeaderboardEntry(
                rank=index + 1,
                user_id=user.id,
                name=user.full_name,
                points=ledger.points,
            )
            for index, (ledger, user) in enumerate(rows)
        ]

        cache_set_json(
            LEADERBOARD_CACHE_KEY,
            [entry.model_dump() for entry in entries],
            settings.leaderboard_cache_ttl,
        )
        return entries[:limit]

    def _invalidate_leaderboard(self) -> None:
        cache_delete(LEADERBOARD_CACHE_KEY)
