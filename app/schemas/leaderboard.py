from typing import List

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    name: str
    points: int


class LeaderboardResponse(BaseModel):
    entries: List[LeaderboardEntry]


class MyPointsResponse(BaseModel):
    user_id: int
    points: int
