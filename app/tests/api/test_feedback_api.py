from datetime import datetime, timedelta, timezone

API = "/api/v1"


def _finished_opportunity(client, org_headers, volunteer_headers, volunteers=("vol-1", "vol-2")):
    body = {
        "title": "Warehouse shift",
        "event_start": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
        "duration_minutes": 240,
        "max_volunteers": 5,
    }
    opp = client.post(f"{API}/opportunities", json=body, headers=org_headers).json()
    for v in volunteers:
        client.post(f"{API}/opportunities/{opp['id']}/join", headers=volunteer_headers(v))
    client.post(
        f"{API}/opportunities/{opp['id']}/status", json={"status": "resolved"}, headers=org_headers
    )
    return opp


def test_feedback_flow(client, org_headers, volunteer_headers):
    opp = _finished_opportunity(client, org_headers, volunteer_headers)
    url = f"{API}/opportunities/{opp['id']}/feedback"

    before = client.get(f"{url}/completion", headers=org_headers).json()
    assert (before["total"], before["completed"], before["is_complete"]) == (2, 0, False)
    assert before["pending_volunteer_ids"] == ["vol-1", "vol-2"]

    r = client.post(
        url,
        json={
            "volunteerId": "vol-1",
            "rating": 5,
            "feedback": "Organized the whole loading dock.",
            "skills": ["logistics"],
            "would_work_again": True,
        },
        headers=org_headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["organizationId"] == "org-1"
    assert r.json()["rating"] == 5

    dup = client.post(url, json={"volunteerId": "vol-1", "rating": 3}, headers=org_headers)
    assert (dup.status_code, dup.json()["error"]) == (409, "DuplicateFeedback")

    after = client.get(f"{url}/completion", headers=org_headers).json()
    assert (after["completed"], after["pending_volunteer_ids"]) == (1, ["vol-2"])


def test_feedback_for_stranger_is_not_eligible(client, org_headers, volunteer_headers):
    opp = _finished_opportunity(client, org_headers, volunteer_headers)

    r = client.post(
        f"{API}/opportunities/{opp['id']}/feedback",
        json={"volunteerId": "vol-9", "rating": 4},
        headers=org_headers,
    )
    assert (r.status_code, r.json()["error"]) == (409, "NotEligible")


def test_volunteer_cannot_submit_feedback(client, org_headers, volunteer_headers):
    opp = _finished_opportunity(client, org_headers, volunteer_headers)

    r = client.post(
        f"{API}/opportunities/{opp['id']}/feedback",
        json={"volunteerId": "vol-2", "rating": 5},
        headers=volunteer_headers("vol-1"),
    )
    assert r.status_code == 403


def test_rating_out_of_range(client, org_headers, volunteer_headers):
    opp = _finished_opportunity(client, org_headers, volunteer_headers)

    r = client.post(
        f"{API}/opportunities/{opp['id']}/feedback",
        json={"volunteerId": "vol-1", "rating": 0},
        headers=org_headers,
    )
    assert r.status_code == 422


def test_volunteer_reads_own_feedback(client, org_headers, volunteer_headers):
    opp = _finished_opportunity(client, org_headers, volunteer_headers)
    client.post(
        f"{API}/opportunities/{opp['id']}/feedback",
        json={"volunteerId": "vol-1", "rating": 5, "areas_of_improvement": "Arrive earlier"},
        headers=org_headers,
    )

    mine = client.get(f"{API}/volunteers/me/feedback", headers=volunteer_headers("vol-1"))
    other = client.get(f"{API}/volunteers/me/feedback", headers=volunteer_headers("vol-2"))

    assert mine.status_code == 200
    assert [(f["opportunityId"], f["rating"]) for f in mine.json()] == [(opp["id"], 5)]
    assert mine.json()[0]["areas_of_improvement"] == "Arrive earlier"
    assert other.json() == []
