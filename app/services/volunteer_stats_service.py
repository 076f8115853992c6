from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.lifecycle import is_terminal
from app.models.assignment import Assignment
from app.models.opportunity import Opportunity

STREAK_GAP = timedelta(days=7)


def _now():
    return datetime.now(timezone.utc)


def _utc(dt: datetime) -> datetime:
    # SQLite hands back naive values; everything is stored as UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _hours(minutes: int) -> float:
    return round(minutes / 60.0, 2)


@dataclass(frozen=True)
class ServiceHistoryEntry:
    opportunity_id: uuid.UUID
    title: str
    organization_id: str
    event_start: datetime
    hours: float
    location: str


@dataclass(frozen=True)
class VolunteerSummary:
    volunteer_id: str
    completed_opportunities: int = 0
    active_opportunities: int = 0
    total_hours: float = 0.0
    hours_this_month: float = 0.0
    current_streak: int = 0
    organizations_served: int = 0
    service_types: Dict[str, int] = field(default_factory=dict)
    service_history: List[ServiceHistoryEntry] = field(default_factory=list)


def service_streak(starts: List[datetime]) -> int:
    """
    Completed events counted back from the most recent one, as long as
    each is within a week of the next.
    """
    streak = 0
    previous = None
    for start in sorted(starts, reverse=True):
        if previous is not None and previous - start > STREAK_GAP:
            break
        streak += 1
        previous = start
    return streak


class VolunteerStatsService:
    """
    Service history for a volunteer's profile, computed from slots they
    still hold (withdrawn sign-ups do not count as service).
    """

    def summary(
        self,
        db: Session,
        *,
        volunteer_id: str,
        now: Optional[datetime] = None,
    ) -> VolunteerSummary:
        opportunities = db.execute(
            select(Opportunity)
            .join(Assignment, Assignment.opportunity_id == Opportunity.id)
            .where(
                Assignment.volunteer_id == volunteer_id,
                Assignment.active.is_(True),
            )
        ).scalars().all()

        completed = [o for o in opportunities if is_terminal(o.status)]
        active = [o for o in opportunities if not is_terminal(o.status)]

        now = now or _now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        this_month = [o for o in completed if _utc(o.event_start) >= month_start]

        history = sorted(
            (
                ServiceHistoryEntry(
                    opportunity_id=o.id,
                    title=o.title,
                    organization_id=o.owner_id,
                    event_start=_utc(o.event_start),
                    hours=_hours(o.duration_minutes),
                    location=o.location,
                )
                for o in completed
            ),
            key=lambda e: e.event_start,
            reverse=True,
        )

        return VolunteerSummary(
            volunteer_id=volunteer_id,
            completed_opportunities=len(completed),
            active_opportunities=len(active),
            total_hours=_hours(sum(o.duration_minutes for o in completed)),
            hours_this_month=_hours(sum(o.duration_minutes for o in this_month)),
            current_streak=service_streak([e.event_start for e in history]),
            organizations_served=len({o.owner_id for o in opportunities}),
            service_types=dict(Counter(tag for o in completed for tag in (o.tags or []))),
            service_history=history,
        )
