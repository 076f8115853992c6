#app/services/capacity_ledger.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import List

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.core.errors import ConsistencyError, NotFoundError
from app.models.assignment import Assignment
from app.models.opportunity import Opportunity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityMismatch:
    opportunity_id: uuid.UUID
    counter: int
    ledger: int


class CapacityLedger:
    """
    Assignment rows are the source of truth for occupancy;
    Opportunity.current_volunteers is a cache maintained in the same transaction.

    This service only detects drift. It never rewrites the counter:
    repair belongs to external tooling.
    """

    def active_count(self, db: Session, opportunity_id: uuid.UUID) -> int:
        return int(
            db.execute(
                select(func.count())
                .select_from(Assignment)
                .where(
                    Assignment.opportunity_id == opportunity_id,
                    Assignment.active.is_(True),
                )
            ).scalar_one()
            or 0
        )

    def verify(self, db: Session, opportunity_id: uuid.UUID) -> int:
        """
        Returns the agreed occupancy, or raises ConsistencyError.
        """
        counter = db.execute(
            select(Opportunity.current_volunteers).where(Opportunity.id == opportunity_id)
        ).scalar_one_or_none()
        if counter is None:
            raise NotFoundError("Opportunity not found.", opportunity_id=str(opportunity_id))

        ledger = self.active_count(db, opportunity_id)
        if counter != ledger:
            logger.error(
                "[capacity] drift opportunity=%s counter=%d ledger=%d",
                opportunity_id, counter, ledger,
            )
            raise ConsistencyError(
                f"current_volunteers={counter} but {ledger} active assignments.",
                opportunity_id=str(opportunity_id),
                counter=counter,
                ledger=ledger,
            )
        return ledger

    def scan(self, db: Session) -> List[CapacityMismatch]:
        """
        One pass over every opportunity; reports all drift, corrects none.
        """
        active = (
            select(
                Assignment.opportunity_id.label("opportunity_id"),
                func.count().label("n"),
            )
            .where(Assignment.active.is_(True))
            .group_by(Assignment.opportunity_id)
            .subquery()
        )

        rows = db.execute(
            select(
                Opportunity.id,
                Opportunity.current_volunteers,
                func.coalesce(active.c.n, 0),
            )
            .outerjoin(active, active.c.opportunity_id == Opportunity.id)
            .where(Opportunity.current_volunteers != func.coalesce(active.c.n, 0))
        ).all()

        mismatches = [
            CapacityMismatch(opportunity_id=oid, counter=int(counter), ledger=int(n))
            for oid, counter, n in rows
        ]
        for m in mismatches:
            logger.error(
                "[capacity] drift opportunity=%s counter=%d ledger=%d",
                m.opportunity_id, m.counter, m.ledger,
            )
        return mismatches
