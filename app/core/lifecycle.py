# app/core/lifecycle.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from app.models.enums import OpportunityStatus

# `assigned` marks filled slots on an otherwise open opportunity.
ACTIVE_STATUSES = frozenset({
    OpportunityStatus.open,
    OpportunityStatus.in_progress,
    OpportunityStatus.waiting,
    OpportunityStatus.assigned,
})

TERMINAL_STATUSES = frozenset({
    OpportunityStatus.resolved,
    OpportunityStatus.closed,
})

# statuses shown to volunteers browsing for work
DISCOVERABLE_STATUSES = frozenset({
    OpportunityStatus.open,
    OpportunityStatus.assigned,
})


def is_terminal(status: str | OpportunityStatus) -> bool:
    return OpportunityStatus(status) in TERMINAL_STATUSES


def roster_frozen(status: str | OpportunityStatus) -> bool:
    """
    Once work is underway nobody joins or leaves until the organization moves it on.
    """
    return OpportunityStatus(status) == OpportunityStatus.in_progress


def accepts_sign_ups(status: str | OpportunityStatus) -> bool:
    return not is_terminal(status) and not roster_frozen(status)


def timestamp_effects(
    current: str | OpportunityStatus,
    target: str | OpportunityStatus,
    now: datetime,
) -> Optional[Dict[str, Optional[datetime]]]:
    """
    Column updates implied by moving current -> target.

    Returns None for a same-state transition (no side effects at all).
    Every other pair is legal; closed -> open is a reopen.
    """
    current = OpportunityStatus(current)
    target = OpportunityStatus(target)

    if current == target:
        return None

    if target == OpportunityStatus.resolved:
        return {"resolved_at": now, "closed_at": None}

    if target == OpportunityStatus.closed:
        return {"closed_at": now, "resolved_at": None}

    return {"resolved_at": None, "closed_at": None}
