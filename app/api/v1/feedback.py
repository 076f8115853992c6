from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.policies.rbac import (
    ACTION_SUBMIT_FEEDBACK,
    Principal,
    require_action,
    require_owner_or_admin,
)
from app.schemas.feedback import (
    CompletionStatusResponse,
    FeedbackPayload,
    FeedbackRecordResponse,
    FeedbackSubmitRequest,
    feedback_to_response,
)
from app.services.feedback_service import FeedbackService
from app.services.opportunity_service import OpportunityService

router = APIRouter()


@router.post(
    "/opportunities/{opportunity_id}/feedback",
    response_model=FeedbackRecordResponse,
    status_code=201,
)
def submit_feedback(
    opportunity_id: uuid.UUID,
    body: FeedbackSubmitRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_action(principal, ACTION_SUBMIT_FEEDBACK)

    payload = FeedbackPayload(**body.model_dump(exclude={"volunteerId"}))
    row = FeedbackService().submit_feedback(
        db,
        opportunity_id=opportunity_id,
        volunteer_id=body.volunteerId,
        organization_id=principal.actor_id,
        payload=payload,
    )
    return feedback_to_response(row)


@router.get(
    "/opportunities/{opportunity_id}/feedback/completion",
    response_model=CompletionStatusResponse,
)
def feedback_completion(
    opportunity_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    opp = OpportunityService().get(db, opportunity_id)
    require_owner_or_admin(principal, opp.owner_id)

    svc = FeedbackService()
    status = svc.completion_status(db, opportunity_id=opportunity_id)
    return CompletionStatusResponse(
        opportunityId=str(opportunity_id),
        total=status.total,
        completed=status.completed,
        is_complete=status.is_complete,
        pending_volunteer_ids=svc.pending_volunteers(db, opportunity_id=opportunity_id),
    )


@router.get("/volunteers/me/feedback", response_model=List[FeedbackRecordResponse])
def my_feedback(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Feedback organizations have left for the calling volunteer, newest first.
    """
    rows = FeedbackService().feedback_for_volunteer(db, volunteer_id=principal.actor_id)
    return [feedback_to_response(r) for r in rows]
