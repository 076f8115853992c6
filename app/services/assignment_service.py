# app/services/assignment_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager

from app.core.errors import (
    AlreadyAssignedError,
    ConflictError,
    FullError,
    NotAssignedError,
    OpportunityLockedError,
    OpportunityUnavailableError,
)
from app.core.lifecycle import is_terminal, roster_frozen
from app.core.retry import run_in_transaction
from app.models.assignment import Assignment
from app.models.opportunity import Opportunity
from app.services.change_notifier import ChangeKind, ChangeNotifier, get_notifier
from app.services.opportunity_service import OpportunityService, priority_order

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class AssignmentCoordinator:
    """
    The only code path that changes slot occupancy.

    Each join/leave is one transaction that:
    - locks the opportunity row (FOR UPDATE)
    - decides on status/capacity read under that lock
    - writes the assignment row and the current_volunteers counter together
    - commits, then emits assignment.changed

    Lost races surface as version conflicts or unique-index violations and are
    retried by run_in_transaction; the retry re-reads and re-decides.
    """

    def __init__(self, notifier: Optional[ChangeNotifier] = None):
        self.notifier = notifier or get_notifier()
        self.opportunities = OpportunityService(notifier=self.notifier)

    # ---------------------------
    # READS
    # ---------------------------

    def get_active_assignment(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        volunteer_id: str,
    ) -> Optional[Assignment]:
        return (
            db.execute(
                select(Assignment)
                .where(
                    Assignment.opportunity_id == opportunity_id,
                    Assignment.volunteer_id == volunteer_id,
                    Assignment.active.is_(True),
                )
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )

    def roster(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> List[Assignment]:
        stmt = select(Assignment).where(Assignment.opportunity_id == opportunity_id)
        if not include_inactive:
            stmt = stmt.where(Assignment.active.is_(True))
        return list(db.execute(stmt.order_by(Assignment.assigned_at.asc())).scalars().all())

    def active_assignments_for_volunteer(
        self,
        db: Session,
        *,
        volunteer_id: str,
        upcoming_only: bool = True,
        now: Optional[datetime] = None,
    ) -> List[Assignment]:
        """
        A volunteer's current sign-ups, most urgent first, then soonest.
        Each row has `.opportunity` loaded.
        """
        stmt = (
            select(Assignment)
            .join(Assignment.opportunity)
            .options(contains_eager(Assignment.opportunity))
            .where(
                Assignment.volunteer_id == volunteer_id,
                Assignment.active.is_(True),
            )
        )
        if upcoming_only:
            stmt = stmt.where(Opportunity.event_start >= (now or _now()))
        stmt = stmt.order_by(priority_order(), Opportunity.event_start.asc())
        return list(db.execute(stmt).scalars().all())

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def join(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        volunteer_id: str,
    ) -> Assignment:
        """
        Rules (checked in order, all under the row lock):
        - opportunity must exist                       -> NotFound
        - not resolved/closed                          -> OpportunityUnavailable
        - not in_progress                              -> OpportunityLocked
        - no active assignment for this volunteer      -> AlreadyAssigned
        - current_volunteers < max_volunteers          -> Full

        Always inserts a fresh row; inactive history is never reactivated.
        Status is not touched when the last slot fills.
        """

        def unit():
            opp = self.opportunities.get_for_update(db, opportunity_id)

            if is_terminal(opp.status):
                raise OpportunityUnavailableError(
                    "This opportunity is no longer available.",
                    opportunity_id=str(opportunity_id), status=opp.status,
                )
            if roster_frozen(opp.status):
                raise OpportunityLockedError(
                    "This opportunity is already in progress.",
                    opportunity_id=str(opportunity_id),
                )
            if self.get_active_assignment(db, opportunity_id=opportunity_id, volunteer_id=volunteer_id):
                raise AlreadyAssignedError(
                    "You are already signed up for this opportunity.",
                    opportunity_id=str(opportunity_id), volunteer_id=volunteer_id,
                )
            if opp.current_volunteers >= opp.max_volunteers:
                raise FullError(
                    "This opportunity has reached its maximum number of volunteers.",
                    opportunity_id=str(opportunity_id), max_volunteers=opp.max_volunteers,
                )

            now = _now()
            row = Assignment(
                opportunity=opp,
                volunteer_id=volunteer_id,
                active=True,
                assigned_at=now,
            )
            db.add(row)
            opp.current_volunteers = opp.current_volunteers + 1
            opp.updated_at = now

            try:
                db.flush()
            except IntegrityError as exc:
                # another writer got the slot or the pair first; re-decide on retry
                raise ConflictError("Concurrent sign-up detected.") from exc

            db.commit()
            return row

        row = run_in_transaction(db, unit, label="join")
        opp = row.opportunity

        logger.info(
            "[assignments] join opportunity=%s volunteer=%s occupancy=%d/%d",
            opp.id, volunteer_id, opp.current_volunteers, opp.max_volunteers,
        )
        self.notifier.emit(
            ChangeKind.ASSIGNMENT_CHANGED,
            opp.id,
            action="joined",
            volunteer_id=volunteer_id,
            assignment_id=str(row.id),
            current_volunteers=opp.current_volunteers,
            is_full=opp.is_full,
        )
        return row

    def leave(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        volunteer_id: str,
    ) -> Assignment:
        """
        Rules:
        - opportunity must exist                       -> NotFound
        - volunteer must hold an active assignment     -> NotAssigned
        - not in_progress (roster frozen)              -> OpportunityLocked

        The assignment is deactivated, never deleted. Status is untouched;
        a freed slot is visible through capacity alone.
        """

        def unit():
            opp = self.opportunities.get_for_update(db, opportunity_id)

            row = self.get_active_assignment(
                db, opportunity_id=opportunity_id, volunteer_id=volunteer_id
            )
            if not row:
                raise NotAssignedError(
                    "You are not signed up for this opportunity.",
                    opportunity_id=str(opportunity_id), volunteer_id=volunteer_id,
                )
            if roster_frozen(opp.status):
                raise OpportunityLockedError(
                    "Cannot withdraw while the opportunity is in progress.",
                    opportunity_id=str(opportunity_id),
                )

            now = _now()
            row.active = False
            row.released_at = now
            if opp.current_volunteers <= 0:
                logger.error(
                    "[assignments] counter already zero on leave opportunity=%s volunteer=%s",
                    opp.id, volunteer_id,
                )
            opp.current_volunteers = max(opp.current_volunteers - 1, 0)
            opp.updated_at = now
            db.commit()
            return row, opp

        row, opp = run_in_transaction(db, unit, label="leave")

        logger.info(
            "[assignments] leave opportunity=%s volunteer=%s occupancy=%d/%d",
            opp.id, volunteer_id, opp.current_volunteers, opp.max_volunteers,
        )
        self.notifier.emit(
            ChangeKind.ASSIGNMENT_CHANGED,
            opp.id,
            action="left",
            volunteer_id=volunteer_id,
            assignment_id=str(row.id),
            current_volunteers=opp.current_volunteers,
            is_full=opp.is_full,
        )
        return row
