"""Network health schemas"""
from pydantic import BaseModel
from typing import Optional, List, Dict, Any


class TrendPoint(BaseModel):
    date: str
    value: float


class NetworkHealthResponse(BaseModel):
    median_gri: float
    active_daos: int
    inactive_daos: int
    total_proposals: int
    total_votes: int
    participation_trend: List[TrendPoint]
    trend_is_mock: bool = True


class CacheStatus(BaseModel):
    last_updated: Optional[str] = None
    daos_cached: int
    refreshing: bool = False
    last_pass: Optional[Dict[str, Any]] = None


class NetworkStatusResponse(BaseModel):
    status: str
    dao_count: int
    cache: CacheStatus
    version: str


class RefreshResponse(BaseModel):
    message: str
    scheduled: bool
