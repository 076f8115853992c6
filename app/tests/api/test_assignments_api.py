from datetime import datetime, timedelta, timezone

API = "/api/v1"


def _create(client, headers, **overrides):
    body = {
        "title": "Beach cleanup",
        "event_start": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
        "duration_minutes": 180,
        "max_volunteers": 1,
        "tags": ["outdoors"],
    }
    body.update(overrides)
    return client.post(f"{API}/opportunities", json=body, headers=headers).json()


def test_join_reports_last_slot(client, org_headers, volunteer_headers):
    opp = _create(client, org_headers)

    r = client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-1"))

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["assignment"]["volunteerId"] == "vol-1"
    assert body["assignment"]["active"] is True
    assert body["current_volunteers"] == 1
    assert body["opportunity_full"] is True


def test_join_full_and_duplicate_are_conflicts(client, org_headers, volunteer_headers):
    opp = _create(client, org_headers)
    client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-1"))

    full = client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-2"))
    again = client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-1"))

    assert (full.status_code, full.json()["error"]) == (409, "Full")
    assert (again.status_code, again.json()["error"]) == (409, "AlreadyAssigned")


def test_organization_cannot_join(client, org_headers):
    opp = _create(client, org_headers)

    r = client.post(f"{API}/opportunities/{opp['id']}/join", headers=org_headers)
    assert r.status_code == 403


def test_locked_roster(client, org_headers, volunteer_headers):
    opp = _create(client, org_headers, max_volunteers=2)
    client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-1"))
    client.post(
        f"{API}/opportunities/{opp['id']}/status", json={"status": "in_progress"}, headers=org_headers
    )

    join = client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-2"))
    leave = client.post(f"{API}/opportunities/{opp['id']}/leave", headers=volunteer_headers("vol-1"))

    assert join.json()["error"] == "OpportunityLocked"
    assert leave.json()["error"] == "OpportunityLocked"


def test_closed_opportunity_is_unavailable(client, org_headers, volunteer_headers):
    opp = _create(client, org_headers)
    client.post(
        f"{API}/opportunities/{opp['id']}/status", json={"status": "closed"}, headers=org_headers
    )

    r = client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-1"))
    assert (r.status_code, r.json()["error"]) == (409, "OpportunityUnavailable")


def test_leave_frees_the_slot(client, org_headers, volunteer_headers):
    opp = _create(client, org_headers)
    client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-1"))

    r = client.post(f"{API}/opportunities/{opp['id']}/leave", headers=volunteer_headers("vol-1"))
    assert r.status_code == 200
    assert r.json()["assignment"]["active"] is False
    assert r.json()["assignment"]["released_at_iso"] is not None
    assert r.json()["current_volunteers"] == 0

    again = client.post(f"{API}/opportunities/{opp['id']}/leave", headers=volunteer_headers("vol-1"))
    assert (again.status_code, again.json()["error"]) == (404, "NotAssigned")


def test_my_assignments_and_summary(client, org_headers, volunteer_headers):
    first = _create(client, org_headers, title="Beach cleanup", max_volunteers=2)
    second = _create(client, org_headers, title="Food drive", priority="urgent", tags=["food"])
    for opp in (first, second):
        client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers("vol-1"))

    mine = client.get(f"{API}/assignments/me", headers=volunteer_headers("vol-1"))
    assert [row["opportunity"]["title"] for row in mine.json()] == ["Food drive", "Beach cleanup"]

    client.post(
        f"{API}/opportunities/{first['id']}/status", json={"status": "resolved"}, headers=org_headers
    )

    summary = client.get(f"{API}/volunteers/me/summary", headers=volunteer_headers("vol-1")).json()
    assert summary["volunteerId"] == "vol-1"
    assert summary["completed_opportunities"] == 1
    assert summary["active_opportunities"] == 1
    assert summary["total_hours"] == 3.0
    assert summary["service_types"] == {"outdoors": 1}
    assert summary["current_streak"] == 1
    assert summary["hours_this_month"] == 3.0
    assert [h["title"] for h in summary["service_history"]] == ["Beach cleanup"]
    assert summary["service_history"][0]["hours"] == 3.0
