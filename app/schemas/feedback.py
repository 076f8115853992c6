from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator


class FeedbackPayload(BaseModel):
    """
    What an organization writes about one volunteer after the work is done.
    """
    rating: int = Field(..., ge=1, le=5)
    feedback: str = ""
    skills: List[str] = Field(default_factory=list)
    areas_of_improvement: str = ""
    would_work_again: bool = False

    @field_validator("skills")
    @classmethod
    def _dedupe_skills(cls, v: List[str]) -> List[str]:
        return sorted({s.strip() for s in v if s and s.strip()})


class FeedbackSubmitRequest(FeedbackPayload):
    volunteerId: str = Field(..., min_length=1)


class FeedbackRecordResponse(BaseModel):
    id: str
    opportunityId: str
    volunteerId: str
    organizationId: str
    rating: int
    feedback: str
    skills: List[str]
    areas_of_improvement: str
    would_work_again: bool
    created_at_iso: str


class CompletionStatusResponse(BaseModel):
    opportunityId: str
    total: int
    completed: int
    is_complete: bool
    pending_volunteer_ids: List[str] = Field(default_factory=list)


def feedback_to_response(row) -> FeedbackRecordResponse:
    created: datetime = row.created_at
    return FeedbackRecordResponse(
        id=str(row.id),
        opportunityId=str(row.opportunity_id),
        volunteerId=row.volunteer_id,
        organizationId=row.organization_id,
        rating=row.rating,
        feedback=row.feedback,
        skills=list(row.skills or []),
        areas_of_improvement=row.areas_of_improvement,
        would_work_again=bool(row.would_work_again),
        created_at_iso=created.isoformat(),
    )
