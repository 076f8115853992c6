# app/services/lifecycle_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidCapacityError
from app.core.lifecycle import timestamp_effects
from app.core.retry import run_in_transaction
from app.models.enums import OpportunityStatus
from app.models.opportunity import Opportunity
from app.policies.rbac import Principal, require_owner_or_admin
from app.services.change_notifier import ChangeKind, ChangeNotifier, get_notifier
from app.services.opportunity_service import OpportunityService

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class LifecycleService:
    """
    Organization-driven status and capacity changes.

    Public methods:
    - transition(db, opportunity_id, new_status, principal) -> Opportunity
    - update_capacity(db, opportunity_id, new_max, principal) -> Opportunity

    Both are serialized per opportunity (FOR UPDATE + version check) and
    make their decision on values read inside the same transaction.
    """

    def __init__(self, notifier: Optional[ChangeNotifier] = None):
        self.notifier = notifier or get_notifier()
        self.opportunities = OpportunityService(notifier=self.notifier)

    def transition(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        new_status: OpportunityStatus | str,
        principal: Principal,
    ) -> Opportunity:
        """
        Rules:
        - Only the owning organization or an admin
        - Any status may follow any other (closed -> open reopens)
        - resolved stamps resolved_at, closed stamps closed_at, active clears both
        - Same status is a no-op: nothing is written
        - Existing assignments are left alone; terminal status only blocks new sign-ups
        """
        target = OpportunityStatus(new_status)

        def unit():
            opp = self.opportunities.get_for_update(db, opportunity_id)
            require_owner_or_admin(principal, opp.owner_id)

            previous = opp.status
            now = _now()
            effects = timestamp_effects(previous, target, now)
            if effects is None:
                db.commit()
                return opp, previous, False

            opp.status = target.value
            for column, value in effects.items():
                setattr(opp, column, value)
            opp.updated_at = now
            db.commit()
            return opp, previous, True

        opp, previous, changed = run_in_transaction(db, unit, label="transition")

        if changed:
            logger.info(
                "[lifecycle] opportunity=%s %s -> %s by=%s",
                opp.id, previous, opp.status, principal.actor_id,
            )
            self.notifier.emit(
                ChangeKind.OPPORTUNITY_CHANGED,
                opp.id,
                change="status",
                previous=previous,
                status=opp.status,
            )
        return opp

    def update_capacity(
        self,
        db: Session,
        *,
        opportunity_id: uuid.UUID,
        new_max: int,
        principal: Principal,
    ) -> Opportunity:
        """
        Capacity never drops below committed sign-ups, and never below 1.
        """

        def unit():
            opp = self.opportunities.get_for_update(db, opportunity_id)
            require_owner_or_admin(principal, opp.owner_id)

            if new_max < 1:
                raise InvalidCapacityError(
                    "max_volunteers must be at least 1.", requested=new_max
                )
            if new_max < opp.current_volunteers:
                raise InvalidCapacityError(
                    f"Cannot reduce capacity to {new_max}: "
                    f"{opp.current_volunteers} volunteers are already signed up.",
                    requested=new_max,
                    current=opp.current_volunteers,
                )

            previous = opp.max_volunteers
            if previous != new_max:
                opp.max_volunteers = new_max
                opp.updated_at = _now()
            db.commit()
            return opp, previous

        opp, previous = run_in_transaction(db, unit, label="update_capacity")

        if previous != opp.max_volunteers:
            logger.info(
                "[lifecycle] opportunity=%s capacity %d -> %d by=%s",
                opp.id, previous, opp.max_volunteers, principal.actor_id,
            )
            self.notifier.emit(
                ChangeKind.OPPORTUNITY_CHANGED,
                opp.id,
                change="capacity",
                max_volunteers=opp.max_volunteers,
                current_volunteers=opp.current_volunteers,
            )
        return opp
