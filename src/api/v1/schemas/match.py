"""Pydantic schemas for Match API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.match import LikeResult, Match, MatchStats, MatchStatus, MatchView
from domain.entities.user import UserSummary


class UserSummaryResponse(BaseModel):
    """Public-facing profile of the other participant."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    photos: list[str] = []
    bio: str | None = None
    city: str | None = None
    state: str | None = None

    @classmethod
    def from_summary(cls, summary: UserSummary | None) -> "UserSummaryResponse | None":
        return cls.model_validate(summary) if summary else None


class MatchResponse(BaseModel):
    """Schema for Match response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "user1_id": "0a4e0e2c-5f1b-4a43-9d2a-2f3b7c1d9e01",
                "user2_id": "7b2c9d3e-1a4f-4c8b-9e0d-5f6a7b8c9d02",
                "status": "mutual",
                "compatibility_score": 67,
                "score_breakdown": {
                    "a_to_b": ["amber"],
                    "b_to_a": ["vanilla"],
                    "awarded": 20,
                    "possible": 30,
                },
                "user1_liked": True,
                "user2_liked": True,
                "created_at": "2026-01-28T10:00:00",
                "matched_at": "2026-01-29T08:30:00",
                "unmatched_at": None,
                "expires_at": None,
                "last_activity_at": "2026-01-29T08:30:00",
                "other_user": None,
            }
        },
    )

    id: UUID
    user1_id: UUID
    user2_id: UUID
    status: MatchStatus
    compatibility_score: int | None
    score_breakdown: dict[str, Any] | None
    user1_liked: bool
    user2_liked: bool
    created_at: datetime
    matched_at: datetime | None
    unmatched_at: datetime | None
    expires_at: datetime | None
    last_activity_at: datetime | None
    other_user: UserSummaryResponse | None = None

    @classmethod
    def from_entity(cls, match: Match, other_user: UserSummary | None = None) -> "MatchResponse":
        return cls(
            id=match.id,
            user1_id=match.user1_id,
            user2_id=match.user2_id,
            status=match.status,
            compatibility_score=match.compatibility_score,
            score_breakdown=match.score_breakdown,
            user1_liked=match.user1_liked,
            user2_liked=match.user2_liked,
            created_at=match.created_at,
            matched_at=match.matched_at,
            unmatched_at=match.unmatched_at,
            expires_at=match.expires_at,
            last_activity_at=match.last_activity_at,
            other_user=UserSummaryResponse.from_summary(other_user),
        )

    @classmethod
    def from_view(cls, view: MatchView) -> "MatchResponse":
        return cls.from_entity(view.match, view.other_user)


class MatchListResponse(BaseModel):
    """Schema for list of Matches response."""

    data: list[MatchResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class MatchDetailResponse(BaseModel):
    """Schema for single Match response."""

    data: MatchResponse


class LikeResponse(BaseModel):
    """Schema for the outcome of a like."""

    data: MatchResponse
    is_mutual: bool
    created: bool

    @classmethod
    def from_result(cls, result: LikeResult) -> "LikeResponse":
        return cls(
            data=MatchResponse.from_entity(result.match),
            is_mutual=result.is_mutual,
            created=result.created,
        )


class MatchStatsResponse(BaseModel):
    """Per-user match counters."""

    model_config = ConfigDict(from_attributes=True)

    active_matches: int
    pending_likes: int
    pending_received: int

    @classmethod
    def from_stats(cls, stats: MatchStats) -> "MatchStatsResponse":
        return cls.model_validate(stats)
