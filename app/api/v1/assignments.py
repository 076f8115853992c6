from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.policies.rbac import ACTION_SIGN_UP, Principal, require_action
from app.schemas.assignments import (
    JoinResponse,
    LeaveResponse,
    MyAssignmentResponse,
    VolunteerSummaryResponse,
    assignment_to_response,
    my_assignments_to_response,
    summary_to_response,
)
from app.services.assignment_service import AssignmentCoordinator
from app.services.volunteer_stats_service import VolunteerStatsService

router = APIRouter()


@router.post("/opportunities/{opportunity_id}/join", response_model=JoinResponse)
def join_opportunity(
    opportunity_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_action(principal, ACTION_SIGN_UP)

    row = AssignmentCoordinator().join(
        db, opportunity_id=opportunity_id, volunteer_id=principal.actor_id
    )
    opp = row.opportunity
    return JoinResponse(
        assignment=assignment_to_response(row),
        current_volunteers=opp.current_volunteers,
        max_volunteers=opp.max_volunteers,
        opportunity_full=opp.is_full,
    )


@router.post("/opportunities/{opportunity_id}/leave", response_model=LeaveResponse)
def leave_opportunity(
    opportunity_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_action(principal, ACTION_SIGN_UP)

    row = AssignmentCoordinator().leave(
        db, opportunity_id=opportunity_id, volunteer_id=principal.actor_id
    )
    opp = row.opportunity
    return LeaveResponse(
        assignment=assignment_to_response(row),
        current_volunteers=opp.current_volunteers,
        max_volunteers=opp.max_volunteers,
    )


@router.get("/assignments/me", response_model=List[MyAssignmentResponse])
def my_assignments(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows = AssignmentCoordinator().active_assignments_for_volunteer(
        db, volunteer_id=principal.actor_id
    )
    return my_assignments_to_response(rows)


@router.get("/volunteers/me/summary", response_model=VolunteerSummaryResponse)
def my_summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    s = VolunteerStatsService().summary(db, volunteer_id=principal.actor_id)
    return summary_to_response(s)
