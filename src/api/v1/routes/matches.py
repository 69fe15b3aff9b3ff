"""Match API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies.auth import CurrentUser
from api.v1.dependencies import get_match_service
from api.v1.schemas.common import AUTH_ERROR_RESPONSES, ErrorResponse
from api.v1.schemas.match import (
    LikeResponse,
    MatchDetailResponse,
    MatchListResponse,
    MatchResponse,
    MatchStatsResponse,
)
from core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from domain.entities.match import MatchStatus
from domain.services.match_service import MAX_PAGE_SIZE, MatchService

router = APIRouter(prefix="/matches", tags=["matches"], responses=AUTH_ERROR_RESPONSES)


@router.get(
    "",
    response_model=MatchListResponse,
    summary="List matches",
    responses={
        200: {"description": "Matches in the requested status, newest first"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_matches(
    request: Request,
    user: CurrentUser,
    service: MatchService = Depends(get_match_service),
    match_status: MatchStatus = Query(
        MatchStatus.MUTUAL, alias="status", description="Only matches in this status"
    ),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> MatchListResponse:
    """
    Get the caller's matches with the other user's public profile.

    Defaults to mutual matches. Ordered by match time, else creation time.
    """
    views = await service.list_matches(user.id, status=match_status, limit=limit, offset=offset)
    return MatchListResponse(
        data=[MatchResponse.from_view(v) for v in views],
        meta={"count": len(views), "limit": limit, "offset": offset},
    )


@router.get(
    "/stats",
    response_model=MatchStatsResponse,
    summary="Match counters",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_match_stats(
    request: Request,
    user: CurrentUser,
    service: MatchService = Depends(get_match_service),
) -> MatchStatsResponse:
    """Count active matches, likes sent and likes received that are still pending."""
    stats = await service.get_stats(user.id)
    return MatchStatsResponse.from_stats(stats)


@router.post(
    "/like/{user_id}",
    response_model=LikeResponse,
    summary="Like a user",
    responses={
        200: {"description": "Pending like recorded, or the match became mutual"},
        400: {"model": ErrorResponse, "description": "Cannot like yourself"},
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Invalid transition or retryable conflict"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def like_user(
    request: Request,
    user_id: UUID,
    user: CurrentUser,
    service: MatchService = Depends(get_match_service),
) -> LikeResponse:
    """
    Like another user.

    The first like of a pair creates a pending match. A like back from the
    other user turns it mutual and opens messaging.
    """
    result = await service.like(user.id, user_id)
    return LikeResponse.from_result(result)


@router.post(
    "/pass/{user_id}",
    response_model=MatchDetailResponse,
    summary="Pass on a user",
    responses={
        400: {"model": ErrorResponse, "description": "Cannot pass on yourself"},
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Invalid transition or retryable conflict"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def pass_user(
    request: Request,
    user_id: UUID,
    user: CurrentUser,
    service: MatchService = Depends(get_match_service),
) -> MatchDetailResponse:
    """Decline another user. Mutual matches must be unmatched instead."""
    match = await service.pass_user(user.id, user_id)
    return MatchDetailResponse(data=MatchResponse.from_entity(match))


@router.delete(
    "/{match_id}",
    response_model=MatchDetailResponse,
    summary="Unmatch",
    responses={
        404: {"model": ErrorResponse, "description": "Match not found"},
        409: {"model": ErrorResponse, "description": "Match is not mutual"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def unmatch(
    request: Request,
    match_id: UUID,
    user: CurrentUser,
    service: MatchService = Depends(get_match_service),
) -> MatchDetailResponse:
    """End a mutual match. Its messages stay readable to both participants."""
    match = await service.unmatch(user.id, match_id)
    return MatchDetailResponse(data=MatchResponse.from_entity(match))
