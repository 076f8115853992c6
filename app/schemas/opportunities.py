from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.lifecycle import accepts_sign_ups
from app.models.enums import OpportunityPriority, OpportunityStatus


class OpportunityCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    location: str = Field("", max_length=256)
    tags: List[str] = Field(default_factory=list)
    priority: OpportunityPriority = OpportunityPriority.medium
    event_start: datetime
    duration_minutes: int = Field(..., gt=0)
    max_volunteers: int = Field(..., ge=1)


class OpportunityUpdateRequest(BaseModel):
    """
    Presentation fields only; omitted fields stay as they are.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=256)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=256)
    tags: Optional[List[str]] = None
    priority: Optional[OpportunityPriority] = None
    event_start: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, gt=0)

    @field_validator("*")
    @classmethod
    def _no_explicit_null(cls, v, info):
        # omitted means unchanged; null would clear a NOT NULL column
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class StatusTransitionRequest(BaseModel):
    status: OpportunityStatus


class CapacityUpdateRequest(BaseModel):
    # range is enforced by the lifecycle service so the caller gets InvalidCapacity
    max_volunteers: int


class OpportunityResponse(BaseModel):
    id: str
    ownerId: str
    title: str
    description: str
    location: str
    tags: List[str]
    status: OpportunityStatus
    priority: OpportunityPriority

    event_start_iso: str
    event_end_iso: str
    duration_minutes: int

    max_volunteers: int
    current_volunteers: int
    open_slots: int
    is_full: bool
    # status allows joins and a slot is free
    accepting_sign_ups: bool

    created_at_iso: Optional[str] = None
    updated_at_iso: Optional[str] = None
    resolved_at_iso: Optional[str] = None
    closed_at_iso: Optional[str] = None


def _iso(dt):
    return dt.isoformat() if dt else None


def opportunity_to_response(opp) -> OpportunityResponse:
    return OpportunityResponse(
        id=str(opp.id),
        ownerId=opp.owner_id,
        title=opp.title,
        description=opp.description,
        location=opp.location,
        tags=list(opp.tags or []),
        status=opp.status,
        priority=opp.priority,
        event_start_iso=_iso(opp.event_start),
        event_end_iso=_iso(opp.event_end),
        duration_minutes=opp.duration_minutes,
        max_volunteers=opp.max_volunteers,
        current_volunteers=opp.current_volunteers,
        open_slots=opp.open_slots,
        is_full=opp.is_full,
        accepting_sign_ups=accepts_sign_ups(opp.status) and not opp.is_full,
        created_at_iso=_iso(opp.created_at),
        updated_at_iso=_iso(opp.updated_at),
        resolved_at_iso=_iso(opp.resolved_at),
        closed_at_iso=_iso(opp.closed_at),
    )
