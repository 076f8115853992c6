# app/services/opportunity_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, case
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import InvalidCapacityError, InvalidFieldError, NotFoundError
from app.core.lifecycle import DISCOVERABLE_STATUSES
from app.core.retry import run_in_transaction
from app.models.assignment import Assignment
from app.models.enums import OpportunityPriority, OpportunityStatus, PRIORITY_RANK
from app.models.opportunity import Opportunity
from app.policies.rbac import (
    ACTION_CREATE_OPPORTUNITY,
    Principal,
    require_action,
    require_owner_or_admin,
)
from app.services.change_notifier import ChangeKind, ChangeNotifier, get_notifier

logger = logging.getLogger(__name__)

# presentation-only columns an owner may edit freely
EDITABLE_FIELDS = frozenset({
    "title",
    "description",
    "location",
    "tags",
    "priority",
    "event_start",
    "duration_minutes",
})


def _now():
    return datetime.now(timezone.utc)


def priority_order():
    return case(PRIORITY_RANK, value=Opportunity.priority, else_=0).desc()


def _priority_value(priority) -> str:
    try:
        return OpportunityPriority(priority).value
    except ValueError as exc:
        raise InvalidFieldError(f"Unknown priority {priority!r}.", field="priority") from exc


class OpportunityService:
    def __init__(self, notifier: Optional[ChangeNotifier] = None):
        self.notifier = notifier or get_notifier()

    # ---------------------------
    # READS
    # ---------------------------

    def get(self, db: Session, opportunity_id: uuid.UUID) -> Opportunity:
        opp = db.get(Opportunity, opportunity_id, populate_existing=True)
        if not opp:
            raise NotFoundError("Opportunity not found.", opportunity_id=str(opportunity_id))
        return opp

    def get_for_update(self, db: Session, opportunity_id: uuid.UUID) -> Opportunity:
        """
        Lock the opportunity row (FOR UPDATE) and reload it, so every decision
        in the current transaction reads committed status and capacity.
        """
        opp = (
            db.execute(
                select(Opportunity)
                .where(Opportunity.id == opportunity_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )
        if not opp:
            raise NotFoundError("Opportunity not found.", opportunity_id=str(opportunity_id))
        return opp

    def list_available(
        self,
        db: Session,
        *,
        volunteer_id: Optional[str] = None,
        now: Optional[datetime] = None,
        days_ahead: Optional[int] = None,
        location: Optional[str] = None,
        min_duration: Optional[int] = None,
        max_duration: Optional[int] = None,
    ) -> List[Opportunity]:
        """
        Upcoming open opportunities with a free slot, most urgent first,
        then soonest. Excludes anything `volunteer_id` already holds.
        """
        now = now or _now()
        days = days_ahead if days_ahead is not None else get_settings().available_window_days
        horizon = now + timedelta(days=days)

        stmt = select(Opportunity).where(
            Opportunity.status.in_([s.value for s in DISCOVERABLE_STATUSES]),
            Opportunity.event_start >= now,
            Opportunity.event_start <= horizon,
            Opportunity.current_volunteers < Opportunity.max_volunteers,
        )

        if location:
            stmt = stmt.where(Opportunity.location.ilike(f"%{location}%"))
        if min_duration is not None:
            stmt = stmt.where(Opportunity.duration_minutes >= min_duration)
        if max_duration is not None:
            stmt = stmt.where(Opportunity.duration_minutes <= max_duration)

        if volunteer_id:
            held = select(Assignment.opportunity_id).where(
                Assignment.volunteer_id == volunteer_id,
                Assignment.active.is_(True),
            )
            stmt = stmt.where(Opportunity.id.not_in(held))

        stmt = stmt.order_by(priority_order(), Opportunity.event_start.asc())
        return list(db.execute(stmt).scalars().all())

    def list_owned(self, db: Session, *, owner_id: str) -> List[Opportunity]:
        return list(
            db.execute(
                select(Opportunity)
                .where(Opportunity.owner_id == owner_id)
                .order_by(Opportunity.event_start.asc())
            )
            .scalars()
            .all()
        )

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def create_opportunity(
        self,
        db: Session,
        *,
        principal: Principal,
        title: str,
        event_start: datetime,
        duration_minutes: int,
        max_volunteers: int,
        description: str = "",
        location: str = "",
        tags: Optional[Iterable[str]] = None,
        priority: OpportunityPriority | str = OpportunityPriority.medium,
    ) -> Opportunity:
        """
        New opportunities always start `open` with no sign-ups.
        """
        require_action(principal, ACTION_CREATE_OPPORTUNITY)

        if max_volunteers < 1:
            raise InvalidCapacityError("max_volunteers must be at least 1.", requested=max_volunteers)
        if duration_minutes <= 0:
            raise InvalidFieldError("duration_minutes must be positive.", field="duration_minutes")

        now = _now()
        opp = Opportunity(
            owner_id=principal.actor_id,
            title=title,
            description=description,
            location=location,
            tags=sorted(set(tags or [])),
            priority=_priority_value(priority),
            status=OpportunityStatus.open.value,
            event_start=event_start,
            duration_minutes=duration_minutes,
            max_volunteers=max_volunteers,
            current_volunteers=0,
            created_at=now,
            updated_at=now,
        )
        db.add(opp)
        db.commit()

        logger.info(
            "[opportunities] created id=%s owner=%s slots=%d",
            opp.id, opp.owner_id, opp.max_volunteers,
        )
        self.notifier.emit(
            ChangeKind.OPPORTUNITY_CHANGED,
            opp.id,
            change="created",
            status=opp.status,
        )
        return opp

    def update_details(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        changes: Dict[str, Any],
        principal: Principal,
    ) -> Opportunity:
        """
        Edit presentation fields. Status and capacity have their own
        operations; anything outside EDITABLE_FIELDS is rejected.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidFieldError(f"Fields not editable here: {sorted(unknown)}", fields=sorted(unknown))

        # every editable column is NOT NULL
        cleared = sorted(name for name, value in changes.items() if value is None)
        if cleared:
            raise InvalidFieldError(f"Fields cannot be cleared: {cleared}", fields=cleared)

        if "duration_minutes" in changes and changes["duration_minutes"] <= 0:
            raise InvalidFieldError("duration_minutes must be positive.", field="duration_minutes")
        if "priority" in changes:
            changes = {**changes, "priority": _priority_value(changes["priority"])}
        if "tags" in changes:
            changes = {**changes, "tags": sorted(set(changes["tags"] or []))}

        def unit():
            opp = self.get_for_update(db, opportunity_id)
            require_owner_or_admin(principal, opp.owner_id)
            for name, value in changes.items():
                setattr(opp, name, value)
            opp.updated_at = _now()
            db.commit()
            return opp

        opp = run_in_transaction(db, unit, label="update_details")

        self.notifier.emit(
            ChangeKind.OPPORTUNITY_CHANGED,
            opp.id,
            change="details",
            fields=sorted(changes),
        )
        return opp
