import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from notesaid.cache import LEADERBOARD_TTL, CacheKeys, RedisCache
from notesaid.deps import get_cache, get_leaderboard_service
from notesaid.leaderboard import (
    DEFAULT_ADMISSION_YEAR,
    DEFAULT_LIMIT,
    TOP_DEFAULT_COUNT,
    LeaderboardQuery,
    LeaderboardService,
)

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])
logger = logging.getLogger(__name__)


@router.get("")
async def leaderboard(
    request: Request,
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),
    cache: RedisCache = Depends(get_cache),
):
    params = dict(request.query_params)
    query = LeaderboardQuery.from_params(params)
    return await cache.get_or_load(CacheKeys.leaderboard(params), lambda: leaderboard.ranked(query), LEADERBOARD_TTL)


@router.get("/top")
async def top_performers(
    admission_year: int = DEFAULT_ADMISSION_YEAR,
    count: int = TOP_DEFAULT_COUNT,
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),
):
    return await leaderboard.top(admission_year, count)


@router.get("/semester")
async def semester_ranking(
    semester: Optional[int] = None,
    admission_year: int = DEFAULT_ADMISSION_YEAR,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),
):
    if semester is None:
        raise HTTPException(status_code=400, detail="Semester parameter is required")
    return await leaderboard.semester(semester, admission_year, page, limit)


@router.get("/search")
async def search(request: Request, leaderboard: LeaderboardService = Depends(get_leaderboard_service)):
    return await leaderboard.search(dict(request.query_params))
