#app/models/enums.py
from __future__ import annotations
from enum import Enum


class ActorRole(str, Enum):
    ORGANIZATION = "organization"
    VOLUNTEER = "volunteer"
    ADMIN = "admin"


class OpportunityStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    waiting = "waiting"
    resolved = "resolved"
    closed = "closed"
    # slots-filled marker; an active substate of open, never terminal
    assigned = "assigned"


class OpportunityPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


# higher ranks sort first
PRIORITY_RANK = {
    OpportunityPriority.low.value: 0,
    OpportunityPriority.medium.value: 1,
    OpportunityPriority.high.value: 2,
    OpportunityPriority.urgent.value: 3,
}
