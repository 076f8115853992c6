#app/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Set

from app.core.errors import ForbiddenError
from app.models.enums import ActorRole


@dataclass(frozen=True)
class Principal:
    actor_id: str
    role: ActorRole
    display_name: str = "Unknown"


# --- Core action constants ---
ACTION_CREATE_OPPORTUNITY = "CREATE_OPPORTUNITY"
ACTION_MANAGE_OPPORTUNITY = "MANAGE_OPPORTUNITY"
ACTION_SIGN_UP = "SIGN_UP"
ACTION_SUBMIT_FEEDBACK = "SUBMIT_FEEDBACK"
ACTION_AUDIT_CAPACITY = "AUDIT_CAPACITY"


def allowed_actions(role: ActorRole) -> Set[str]:
    """
    Pure RBAC: which actions a role may attempt.
    Ownership is checked separately against the opportunity.
    """

    if role == ActorRole.ORGANIZATION:
        return {ACTION_CREATE_OPPORTUNITY, ACTION_MANAGE_OPPORTUNITY, ACTION_SUBMIT_FEEDBACK}

    if role == ActorRole.VOLUNTEER:
        return {ACTION_SIGN_UP}

    if role == ActorRole.ADMIN:
        return {ACTION_CREATE_OPPORTUNITY, ACTION_MANAGE_OPPORTUNITY, ACTION_AUDIT_CAPACITY}

    return set()


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise ForbiddenError(
            f"Role {principal.role.value} not permitted for action {action}.",
            actor_id=principal.actor_id,
        )


def require_owner_or_admin(principal: Principal, owner_id: str) -> None:
    """
    Status, capacity and detail edits: the owning organization or an admin.
    """
    require_action(principal, ACTION_MANAGE_OPPORTUNITY)
    if principal.role == ActorRole.ADMIN:
        return
    if principal.actor_id != owner_id:
        raise ForbiddenError(
            "Only the owning organization may change this opportunity.",
            actor_id=principal.actor_id,
        )
