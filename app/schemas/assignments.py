from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.opportunities import OpportunityResponse, opportunity_to_response


class AssignmentResponse(BaseModel):
    id: str
    opportunityId: str
    volunteerId: str
    active: bool
    assigned_at_iso: str
    released_at_iso: Optional[str] = None


class JoinResponse(BaseModel):
    assignment: AssignmentResponse
    current_volunteers: int
    max_volunteers: int
    # the slot just taken was the last one
    opportunity_full: bool


class LeaveResponse(BaseModel):
    assignment: AssignmentResponse
    current_volunteers: int
    max_volunteers: int


class MyAssignmentResponse(BaseModel):
    assignment: AssignmentResponse
    opportunity: OpportunityResponse


class ServiceHistoryResponse(BaseModel):
    opportunityId: str
    title: str
    organizationId: str
    event_start_iso: str
    hours: float
    location: str


class VolunteerSummaryResponse(BaseModel):
    volunteerId: str
    completed_opportunities: int
    active_opportunities: int
    total_hours: float
    hours_this_month: float
    current_streak: int
    organizations_served: int
    service_types: Dict[str, int] = Field(default_factory=dict)
    service_history: List[ServiceHistoryResponse] = Field(default_factory=list)


class ConsistencyResponse(BaseModel):
    opportunityId: str
    consistent: bool
    active_assignments: int


class CapacityMismatchResponse(BaseModel):
    opportunityId: str
    counter: int
    ledger: int


def assignment_to_response(row) -> AssignmentResponse:
    return AssignmentResponse(
        id=str(row.id),
        opportunityId=str(row.opportunity_id),
        volunteerId=row.volunteer_id,
        active=bool(row.active),
        assigned_at_iso=row.assigned_at.isoformat(),
        released_at_iso=row.released_at.isoformat() if row.released_at else None,
    )


def my_assignments_to_response(rows) -> List[MyAssignmentResponse]:
    return [
        MyAssignmentResponse(
            assignment=assignment_to_response(r),
            opportunity=opportunity_to_response(r.opportunity),
        )
        for r in rows
    ]


def summary_to_response(s) -> VolunteerSummaryResponse:
    return VolunteerSummaryResponse(
        volunteerId=s.volunteer_id,
        completed_opportunities=s.completed_opportunities,
        active_opportunities=s.active_opportunities,
        total_hours=s.total_hours,
        hours_this_month=s.hours_this_month,
        current_streak=s.current_streak,
        organizations_served=s.organizations_served,
        service_types=s.service_types,
        service_history=[
            ServiceHistoryResponse(
                opportunityId=str(e.opportunity_id),
                title=e.title,
                organizationId=e.organization_id,
                event_start_iso=e.event_start.isoformat(),
                hours=e.hours,
                location=e.location,
            )
            for e in s.service_history
        ],
    )
