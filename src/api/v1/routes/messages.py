"""Message API routes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentUser
from api.v1.dependencies import get_conversation_service
from api.v1.schemas.common import AUTH_ERROR_RESPONSES, ErrorResponse
from api.v1.schemas.message import (
    ConversationListResponse,
    ConversationResponse,
    MarkReadResponse,
    MessageCreate,
    MessageDetailResponse,
    MessageListResponse,
    MessageResponse,
    UnreadCountResponse,
)
from core.config import settings
from core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from domain.services.conversation_service import MAX_PAGE_SIZE, ConversationService

router = APIRouter(prefix="/messages", tags=["messages"], responses=AUTH_ERROR_RESPONSES)


@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    summary="List conversations",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_conversations(
    request: Request,
    user: CurrentUser,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationListResponse:
    """
    Get one entry per mutual match with the last message and unread count.

    Ordered by most recent activity first.
    """
    summaries = await service.list_conversations(user.id)
    return ConversationListResponse(
        data=[ConversationResponse.from_summary(s) for s in summaries],
        meta={"total": len(summaries)},
    )


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
    summary="Count unread messages",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_unread_count(
    request: Request,
    user: CurrentUser,
    service: ConversationService = Depends(get_conversation_service),
) -> UnreadCountResponse:
    """Total unread messages addressed to the caller across all matches."""
    return UnreadCountResponse(unread_count=await service.unread_count(user.id))


@router.get(
    "/match/{match_id}",
    response_model=MessageListResponse,
    summary="List messages of a match",
    responses={
        404: {"model": ErrorResponse, "description": "Match not found"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_messages(
    request: Request,
    match_id: UUID,
    user: CurrentUser,
    service: ConversationService = Depends(get_conversation_service),
    before: datetime | None = Query(None, description="Only messages sent before this time"),
    before_id: int | None = Query(
        None, ge=1, description="Id of the message at `before`, to page past equal timestamps"
    ),
    limit: int = Query(settings.message_page_limit, ge=1, le=MAX_PAGE_SIZE),
) -> MessageListResponse:
    """
    Get a page of decrypted messages, oldest first.

    Pass `oldest_sent_at` and `oldest_id` from the previous page's meta as
    `before` and `before_id` to page backwards.
    A message that fails to decrypt is returned with `content: null` and
    `decryption_failed: true`.
    """
    views = await service.list_messages(
        user.id, match_id, before=before, before_id=before_id, limit=limit
    )
    return MessageListResponse(
        data=[MessageResponse.from_view(v) for v in views],
        meta={
            "count": len(views),
            "has_more": len(views) == limit,
            "oldest_sent_at": views[0].sent_at.isoformat() if views else None,
            "oldest_id": views[0].id if views else None,
        },
    )


@router.post(
    "/send",
    response_model=MessageDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    responses={
        201: {"description": "Message encrypted and stored"},
        400: {"model": ErrorResponse, "description": "Empty or oversized content"},
        403: {"model": ErrorResponse, "description": "Match is not mutual"},
        404: {"model": ErrorResponse, "description": "Match not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def send_message(
    request: Request,
    body: MessageCreate,
    user: CurrentUser,
    service: ConversationService = Depends(get_conversation_service),
) -> MessageDetailResponse:
    """Send a message to the other participant of a mutual match."""
    view = await service.send(
        user.id,
        body.match_id,
        body.content,
        kind=body.kind,
        media_url=body.media_url,
    )
    return MessageDetailResponse(data=MessageResponse.from_view(view))


@router.put(
    "/read/{match_id}",
    response_model=MarkReadResponse,
    summary="Mark messages as read",
    responses={
        404: {"model": ErrorResponse, "description": "Match not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def mark_read(
    request: Request,
    match_id: UUID,
    user: CurrentUser,
    service: ConversationService = Depends(get_conversation_service),
) -> MarkReadResponse:
    """Mark every unread message addressed to the caller in a match as read."""
    return MarkReadResponse(marked_read=await service.mark_read(user.id, match_id))
