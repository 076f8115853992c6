from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    DuplicateFeedbackError,
    ForbiddenError,
    NotEligibleError,
)
from app.core.lifecycle import is_terminal
from app.models.assignment import Assignment
from app.models.feedback import FeedbackRecord
from app.schemas.feedback import FeedbackPayload
from app.services.opportunity_service import OpportunityService

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CompletionStatus:
    total: int
    completed: int

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.total


class FeedbackService:
    """
    Post-completion feedback, one record per volunteer who ever held a slot.
    Records are immutable; there is no update or delete.
    """

    def __init__(self):
        self.opportunities = OpportunityService()

    # ---------------------------
    # READS
    # ---------------------------

    def _ever_assigned(self, opportunity_id: uuid.UUID):
        # includes withdrawn volunteers: they still did (part of) the work
        return (
            select(Assignment.volunteer_id)
            .where(Assignment.opportunity_id == opportunity_id)
            .distinct()
        )

    def was_assigned(self, db: Session, *, opportunity_id: uuid.UUID, volunteer_id: str) -> bool:
        return db.execute(
            select(Assignment.id).where(
                Assignment.opportunity_id == opportunity_id,
                Assignment.volunteer_id == volunteer_id,
            ).limit(1)
        ).first() is not None

    def get_feedback(
        self, db: Session, *, opportunity_id: uuid.UUID, volunteer_id: str
    ) -> FeedbackRecord | None:
        return db.execute(
            select(FeedbackRecord).where(
                FeedbackRecord.opportunity_id == opportunity_id,
                FeedbackRecord.volunteer_id == volunteer_id,
            )
        ).scalar_one_or_none()

    def completion_status(self, db: Session, *, opportunity_id: uuid.UUID) -> CompletionStatus:
        self.opportunities.get(db, opportunity_id)

        assigned = self._ever_assigned(opportunity_id).subquery()

        total = db.execute(
            select(func.count()).select_from(assigned)
        ).scalar_one()

        completed = db.execute(
            select(func.count(func.distinct(FeedbackRecord.volunteer_id))).where(
                FeedbackRecord.opportunity_id == opportunity_id,
                FeedbackRecord.volunteer_id.in_(select(assigned.c.volunteer_id)),
            )
        ).scalar_one()

        return CompletionStatus(total=int(total or 0), completed=int(completed or 0))

    def pending_volunteers(self, db: Session, *, opportunity_id: uuid.UUID) -> List[str]:
        """
        Volunteers ever assigned who have no feedback yet, in id order.
        """
        reviewed = select(FeedbackRecord.volunteer_id).where(
            FeedbackRecord.opportunity_id == opportunity_id
        )
        rows = db.execute(
            self._ever_assigned(opportunity_id)
            .where(Assignment.volunteer_id.not_in(reviewed))
            .order_by(Assignment.volunteer_id)
        ).scalars().all()
        return list(rows)

    def feedback_for_volunteer(self, db: Session, *, volunteer_id: str) -> List[FeedbackRecord]:
        return list(
            db.execute(
                select(FeedbackRecord)
                .where(FeedbackRecord.volunteer_id == volunteer_id)
                .order_by(FeedbackRecord.created_at.desc())
            ).scalars().all()
        )

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def submit_feedback(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        volunteer_id: str,
        organization_id: str,
        payload: FeedbackPayload,
    ) -> FeedbackRecord:
        """
        Rules:
        - organization_id must own the opportunity          -> Forbidden
        - opportunity resolved/closed and volunteer was
          assigned at some point (active or not)            -> NotEligible
        - no earlier record for this volunteer              -> DuplicateFeedback
        """
        opp = self.opportunities.get(db, opportunity_id)

        if opp.owner_id != organization_id:
            raise ForbiddenError(
                "Only the owning organization may leave feedback.",
                opportunity_id=str(opportunity_id),
            )

        if not is_terminal(opp.status):
            raise NotEligibleError(
                "Feedback opens once the opportunity is resolved or closed.",
                opportunity_id=str(opportunity_id), status=opp.status,
            )
        if not self.was_assigned(db, opportunity_id=opportunity_id, volunteer_id=volunteer_id):
            raise NotEligibleError(
                "This volunteer never signed up for the opportunity.",
                opportunity_id=str(opportunity_id), volunteer_id=volunteer_id,
            )

        if self.get_feedback(db, opportunity_id=opportunity_id, volunteer_id=volunteer_id):
            raise DuplicateFeedbackError(
                "Feedback for this volunteer has already been submitted.",
                opportunity_id=str(opportunity_id), volunteer_id=volunteer_id,
            )

        row = FeedbackRecord(
            opportunity_id=opportunity_id,
            volunteer_id=volunteer_id,
            organization_id=organization_id,
            rating=payload.rating,
            feedback=payload.feedback,
            skills=list(payload.skills),
            areas_of_improvement=payload.areas_of_improvement,
            would_work_again=payload.would_work_again,
            created_at=_now(),
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError as exc:
            # lost a race against an identical submission
            db.rollback()
            raise DuplicateFeedbackError(
                "Feedback for this volunteer has already been submitted.",
                opportunity_id=str(opportunity_id), volunteer_id=volunteer_id,
            ) from exc

        logger.info(
            "[feedback] recorded opportunity=%s volunteer=%s rating=%d",
            opportunity_id, volunteer_id, row.rating,
        )
        return row
