from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.models.enums import ActorRole
from app.policies.rbac import (
    ACTION_AUDIT_CAPACITY,
    Principal,
    require_action,
    require_owner_or_admin,
)
from app.schemas.assignments import (
    AssignmentResponse,
    CapacityMismatchResponse,
    ConsistencyResponse,
    assignment_to_response,
)
from app.schemas.opportunities import (
    CapacityUpdateRequest,
    OpportunityCreateRequest,
    OpportunityResponse,
    OpportunityUpdateRequest,
    StatusTransitionRequest,
    opportunity_to_response,
)
from app.services.assignment_service import AssignmentCoordinator
from app.services.capacity_ledger import CapacityLedger
from app.services.lifecycle_service import LifecycleService
from app.services.opportunity_service import OpportunityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/opportunities")


@router.post("", response_model=OpportunityResponse, status_code=201)
def create_opportunity(
    body: OpportunityCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    opp = OpportunityService().create_opportunity(
        db,
        principal=principal,
        title=body.title,
        description=body.description,
        location=body.location,
        tags=body.tags,
        priority=body.priority,
        event_start=body.event_start,
        duration_minutes=body.duration_minutes,
        max_volunteers=body.max_volunteers,
    )
    return opportunity_to_response(opp)


@router.get("/available", response_model=List[OpportunityResponse])
def list_available_opportunities(
    days_ahead: Optional[int] = Query(None, ge=1, le=365),
    location: Optional[str] = Query(None, max_length=256),
    min_duration: Optional[int] = Query(None, ge=1),
    max_duration: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Discovery list. For a volunteer, hides anything they already signed up for.
    """
    volunteer_id = principal.actor_id if principal.role == ActorRole.VOLUNTEER else None
    rows = OpportunityService().list_available(
        db,
        volunteer_id=volunteer_id,
        days_ahead=days_ahead,
        location=location,
        min_duration=min_duration,
        max_duration=max_duration,
    )
    logger.info("[opportunities] available actor=%s count=%d", principal.actor_id, len(rows))
    return [opportunity_to_response(o) for o in rows]


@router.get("/mine", response_model=List[OpportunityResponse])
def list_my_opportunities(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows = OpportunityService().list_owned(db, owner_id=principal.actor_id)
    return [opportunity_to_response(o) for o in rows]


@router.get("/capacity-drift", response_model=List[CapacityMismatchResponse])
def scan_capacity_drift(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Every opportunity whose counter disagrees with its sign-ups. Read-only.
    """
    require_action(principal, ACTION_AUDIT_CAPACITY)
    return [
        CapacityMismatchResponse(opportunityId=str(m.opportunity_id), counter=m.counter, ledger=m.ledger)
        for m in CapacityLedger().scan(db)
    ]


@router.get("/{opportunity_id}", response_model=OpportunityResponse)
def get_opportunity(
    opportunity_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return opportunity_to_response(OpportunityService().get(db, opportunity_id))


@router.patch("/{opportunity_id}", response_model=OpportunityResponse)
def update_opportunity_details(
    opportunity_id: uuid.UUID,
    body: OpportunityUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    opp = OpportunityService().update_details(
        db,
        opportunity_id=opportunity_id,
        changes=body.model_dump(exclude_unset=True),
        principal=principal,
    )
    return opportunity_to_response(opp)


@router.post("/{opportunity_id}/status", response_model=OpportunityResponse)
def transition_status(
    opportunity_id: uuid.UUID,
    body: StatusTransitionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    opp = LifecycleService().transition(
        db,
        opportunity_id=opportunity_id,
        new_status=body.status,
        principal=principal,
    )
    return opportunity_to_response(opp)


@router.post("/{opportunity_id}/capacity", response_model=OpportunityResponse)
def update_capacity(
    opportunity_id: uuid.UUID,
    body: CapacityUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    opp = LifecycleService().update_capacity(
        db,
        opportunity_id=opportunity_id,
        new_max=body.max_volunteers,
        principal=principal,
    )
    return opportunity_to_response(opp)


@router.get("/{opportunity_id}/roster", response_model=List[AssignmentResponse])
def get_roster(
    opportunity_id: uuid.UUID,
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    opp = OpportunityService().get(db, opportunity_id)
    require_owner_or_admin(principal, opp.owner_id)

    rows = AssignmentCoordinator().roster(
        db, opportunity_id=opportunity_id, include_inactive=include_inactive
    )
    return [assignment_to_response(r) for r in rows]


@router.get("/{opportunity_id}/consistency", response_model=ConsistencyResponse)
def verify_capacity(
    opportunity_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Counter vs. ledger check. Drift comes back as a ConsistencyError (500).
    """
    require_action(principal, ACTION_AUDIT_CAPACITY)
    n = CapacityLedger().verify(db, opportunity_id)
    return ConsistencyResponse(
        opportunityId=str(opportunity_id),
        consistent=True,
        active_assignments=n,
    )
