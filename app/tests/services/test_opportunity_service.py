from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import ForbiddenError, InvalidCapacityError, InvalidFieldError
from app.models.enums import ActorRole
from app.policies.rbac import Principal
from app.services.assignment_service import AssignmentCoordinator
from app.services.change_notifier import ChangeKind
from app.services.lifecycle_service import LifecycleService
from app.services.opportunity_service import OpportunityService


def test_create_starts_open_and_empty(db, org, notifier, make_opportunity):
    opp = make_opportunity(max_volunteers=4, tags=["food", "food", "warehouse"])

    assert opp.status == "open"
    assert opp.priority == "medium"
    assert opp.current_volunteers == 0
    assert opp.open_slots == 4
    assert opp.tags == ["food", "warehouse"]
    assert opp.owner_id == org.actor_id

    event = notifier.events[-1]
    assert event.kind == ChangeKind.OPPORTUNITY_CHANGED
    assert event.payload["change"] == "created"


def test_create_rejects_zero_capacity(db, make_opportunity):
    with pytest.raises(InvalidCapacityError):
        make_opportunity(max_volunteers=0)


def test_create_rejects_non_positive_duration(db, make_opportunity):
    with pytest.raises(InvalidFieldError):
        make_opportunity(duration_minutes=0)


def test_volunteer_cannot_create(db, make_opportunity):
    volunteer = Principal(actor_id="vol-1", role=ActorRole.VOLUNTEER)

    with pytest.raises(ForbiddenError):
        make_opportunity(principal=volunteer)


def test_update_details(db, org, notifier, make_opportunity):
    opp = make_opportunity()

    opp = OpportunityService(notifier=notifier).update_details(
        db,
        opportunity_id=opp.id,
        changes={"title": "Sort winter coats", "priority": "high"},
        principal=org,
    )

    assert opp.title == "Sort winter coats"
    assert opp.priority == "high"
    assert notifier.events[-1].payload == {"change": "details", "fields": ["priority", "title"]}


def test_update_details_refuses_status_and_capacity(db, org, notifier, make_opportunity):
    opp = make_opportunity()
    svc = OpportunityService(notifier=notifier)

    with pytest.raises(ValueError):
        svc.update_details(db, opportunity_id=opp.id, changes={"status": "closed"}, principal=org)
    with pytest.raises(ValueError):
        svc.update_details(db, opportunity_id=opp.id, changes={"max_volunteers": 9}, principal=org)


def test_update_details_refuses_to_clear_required_fields(db, org, notifier, make_opportunity):
    opp = make_opportunity()
    svc = OpportunityService(notifier=notifier)

    for field in ("title", "event_start", "duration_minutes", "tags"):
        with pytest.raises(InvalidFieldError) as exc:
            svc.update_details(db, opportunity_id=opp.id, changes={field: None}, principal=org)
        assert exc.value.context["fields"] == [field]

    assert OpportunityService().get(db, opp.id).title == "Sort donations"


def test_update_details_rejects_unknown_priority(db, org, notifier, make_opportunity):
    opp = make_opportunity()

    with pytest.raises(InvalidFieldError):
        OpportunityService(notifier=notifier).update_details(
            db, opportunity_id=opp.id, changes={"priority": "someday"}, principal=org
        )


def test_update_details_requires_owner(db, other_org, notifier, make_opportunity):
    opp = make_opportunity()

    with pytest.raises(ForbiddenError):
        OpportunityService(notifier=notifier).update_details(
            db, opportunity_id=opp.id, changes={"title": "Mine now"}, principal=other_org
        )


def test_list_available_filters_and_orders(db, org, notifier, make_opportunity):
    soon = make_opportunity(title="Soon", days_ahead=1)
    urgent = make_opportunity(title="Urgent", days_ahead=3, priority="urgent")
    make_opportunity(title="Past", days_ahead=-1)
    make_opportunity(title="Far future", days_ahead=90)
    full = make_opportunity(title="Full", max_volunteers=1)
    closed = make_opportunity(title="Closed")
    started = make_opportunity(title="Started")

    AssignmentCoordinator(notifier=notifier).join(db, opportunity_id=full.id, volunteer_id="vol-9")
    lifecycle = LifecycleService(notifier=notifier)
    lifecycle.transition(db, opportunity_id=closed.id, new_status="closed", principal=org)
    lifecycle.transition(db, opportunity_id=started.id, new_status="in_progress", principal=org)

    rows = OpportunityService().list_available(db)

    assert [o.title for o in rows] == ["Urgent", "Soon"]
    assert {o.id for o in rows} == {soon.id, urgent.id}


def test_list_available_hides_what_volunteer_already_holds(db, notifier, make_opportunity):
    held = make_opportunity(title="Held", max_volunteers=3)
    make_opportunity(title="Free")
    AssignmentCoordinator(notifier=notifier).join(db, opportunity_id=held.id, volunteer_id="vol-1")

    mine = OpportunityService().list_available(db, volunteer_id="vol-1")
    theirs = OpportunityService().list_available(db, volunteer_id="vol-2")

    assert [o.title for o in mine] == ["Free"]
    assert sorted(o.title for o in theirs) == ["Free", "Held"]


def test_list_available_location_and_duration_filters(db, make_opportunity):
    make_opportunity(title="Short downtown", location="Downtown Hall", duration_minutes=60)
    make_opportunity(title="Long downtown", location="downtown hall", duration_minutes=300)
    make_opportunity(title="Riverside", location="Riverside Park", duration_minutes=60)

    svc = OpportunityService()
    downtown = svc.list_available(db, location="DOWNTOWN")
    short = svc.list_available(db, max_duration=120)
    long_ = svc.list_available(db, min_duration=120)

    assert sorted(o.title for o in downtown) == ["Long downtown", "Short downtown"]
    assert sorted(o.title for o in short) == ["Riverside", "Short downtown"]
    assert [o.title for o in long_] == ["Long downtown"]


def test_list_available_window_is_configurable(db, make_opportunity):
    make_opportunity(title="Next week", days_ahead=7)

    svc = OpportunityService()
    now = datetime.now(timezone.utc)
    assert svc.list_available(db, now=now, days_ahead=3) == []
    assert len(svc.list_available(db, now=now + timedelta(days=5), days_ahead=3)) == 1


def test_list_owned(db, org, other_org, make_opportunity):
    make_opportunity(title="Ours")
    make_opportunity(title="Theirs", principal=other_org)

    rows = OpportunityService().list_owned(db, owner_id=org.actor_id)
    assert [o.title for o in rows] == ["Ours"]
