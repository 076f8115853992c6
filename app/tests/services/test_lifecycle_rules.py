from datetime import datetime, timezone

import pytest

from app.core.lifecycle import accepts_sign_ups, is_terminal, roster_frozen, timestamp_effects
from app.core.errors import ForbiddenError
from app.models.enums import ActorRole, OpportunityStatus
from app.policies.rbac import (
    ACTION_AUDIT_CAPACITY,
    ACTION_SIGN_UP,
    Principal,
    require_action,
    require_owner_or_admin,
)

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "status, terminal, frozen, open_for_sign_up",
    [
        ("open", False, False, True),
        ("assigned", False, False, True),
        ("waiting", False, False, True),
        ("in_progress", False, True, False),
        ("resolved", True, False, False),
        ("closed", True, False, False),
    ],
)
def test_status_classification(status, terminal, frozen, open_for_sign_up):
    assert is_terminal(status) is terminal
    assert roster_frozen(status) is frozen
    assert accepts_sign_ups(status) is open_for_sign_up


def test_timestamp_effects():
    assert timestamp_effects("open", "open", NOW) is None
    assert timestamp_effects("open", "resolved", NOW) == {"resolved_at": NOW, "closed_at": None}
    assert timestamp_effects("resolved", "closed", NOW) == {"closed_at": NOW, "resolved_at": None}
    assert timestamp_effects("closed", OpportunityStatus.open, NOW) == {
        "resolved_at": None,
        "closed_at": None,
    }


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        timestamp_effects("open", "archived", NOW)


def test_role_actions():
    volunteer = Principal(actor_id="vol-1", role=ActorRole.VOLUNTEER)
    org = Principal(actor_id="org-1", role=ActorRole.ORGANIZATION)
    admin = Principal(actor_id="admin-1", role=ActorRole.ADMIN)

    require_action(volunteer, ACTION_SIGN_UP)
    require_action(admin, ACTION_AUDIT_CAPACITY)
    with pytest.raises(ForbiddenError):
        require_action(org, ACTION_SIGN_UP)
    with pytest.raises(ForbiddenError):
        require_action(org, ACTION_AUDIT_CAPACITY)

    require_owner_or_admin(org, "org-1")
    require_owner_or_admin(admin, "org-1")
    with pytest.raises(ForbiddenError):
        require_owner_or_admin(org, "org-2")
    with pytest.raises(ForbiddenError):
        require_owner_or_admin(volunteer, "org-1")
