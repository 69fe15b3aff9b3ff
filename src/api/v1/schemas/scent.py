"""Pydantic schemas for Scent API."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from domain.services.compatibility_service import CompatibilityReport


class ScentNotesResponse(BaseModel):
    """The note lists of one scent profile."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    scent_notes: list[str]
    preferred_notes: list[str]
    intensity: int


class CompatibilityResponse(BaseModel):
    """Compatibility between the caller and another user."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "0a4e0e2c-5f1b-4a43-9d2a-2f3b7c1d9e01",
                "other_user_id": "7b2c9d3e-1a4f-4c8b-9e0d-5f6a7b8c9d02",
                "compatibility_percentage": 50,
                "breakdown": {
                    "a_to_b": ["vanilla"],
                    "b_to_a": [],
                    "awarded": 10,
                    "possible": 20,
                },
                "profile": {
                    "user_id": "0a4e0e2c-5f1b-4a43-9d2a-2f3b7c1d9e01",
                    "scent_notes": ["woody", "amber"],
                    "preferred_notes": ["vanilla"],
                    "intensity": 6,
                },
                "other_profile": {
                    "user_id": "7b2c9d3e-1a4f-4c8b-9e0d-5f6a7b8c9d02",
                    "scent_notes": ["vanilla"],
                    "preferred_notes": ["citrus"],
                    "intensity": 4,
                },
            }
        },
    )

    user_id: UUID
    other_user_id: UUID
    compatibility_percentage: int
    breakdown: dict[str, Any]
    profile: ScentNotesResponse
    other_profile: ScentNotesResponse

    @classmethod
    def from_report(cls, report: CompatibilityReport) -> "CompatibilityResponse":
        return cls(
            user_id=report.user_id,
            other_user_id=report.other_user_id,
            compatibility_percentage=report.result.percentage,
            breakdown=report.result.breakdown,
            profile=ScentNotesResponse.model_validate(report.profile),
            other_profile=ScentNotesResponse.model_validate(report.other_profile),
        )
