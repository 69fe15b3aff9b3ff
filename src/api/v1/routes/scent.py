"""Scent compatibility API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from api.dependencies.auth import CurrentUser
from api.v1.dependencies import get_compatibility_service
from api.v1.schemas.common import AUTH_ERROR_RESPONSES, ErrorResponse
from api.v1.schemas.scent import CompatibilityResponse
from core.rate_limit import READ_LIMIT, limiter
from domain.services.compatibility_service import CompatibilityService

router = APIRouter(prefix="/scent", tags=["scent"], responses=AUTH_ERROR_RESPONSES)


@router.get(
    "/compatibility/{user_id}",
    response_model=CompatibilityResponse,
    summary="Scent compatibility with a user",
    responses={
        400: {"model": ErrorResponse, "description": "Cannot score yourself"},
        404: {"model": ErrorResponse, "description": "Scent profile not found"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_compatibility(
    request: Request,
    user_id: UUID,
    user: CurrentUser,
    service: CompatibilityService = Depends(get_compatibility_service),
) -> CompatibilityResponse:
    """
    Score the caller's scent profile against another user's.

    Each preferred note found among the other user's scent notes earns
    points, in both directions. Profiles without preferences score 50.
    """
    report = await service.get_compatibility(user.id, user_id)
    return CompatibilityResponse.from_report(report)
