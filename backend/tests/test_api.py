"""
End-to-end tests for the RSVP, organizer, feedback and scheduler endpoints.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient

from attendance.core.config import get_settings
from attendance.main import app
from tests.conftest import CRON_API_KEY, ORGANIZER_ID, auth_headers_for


async def create_event(client: AsyncClient, headers: dict, **overrides) -> int:
    payload = {
        "title": "API Meetup",
        "start_time": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
        "max_attendees": 1,
    }
    payload.update(overrides)
    response = await client.post("/api/v1/events/", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["id"]


async def join(client: AsyncClient, event_id: int, user_id: int):
    return await client.post(f"/api/v1/events/{event_id}/rsvp/", headers=auth_headers_for(user_id))


@pytest.mark.asyncio
async def test_join_and_waitlist(client: AsyncClient, organizer_headers):
    """First joiner is confirmed, the next one lands on the waitlist."""
    event_id = await create_event(client, organizer_headers)

    first = await join(client, event_id, 10)
    assert first.status_code == 200
    assert first.json()["status"] == "CONFIRMED"
    assert first.json()["waitlisted"] is False
    assert first.json()["summary"]["confirmed_count"] == 1

    second = await join(client, event_id, 11)
    assert second.status_code == 200
    assert second.json()["status"] == "WAITLISTED"
    assert second.json()["waitlisted"] is True
    assert second.json()["summary"] == {
        "confirmed_count": 1,
        "waitlist_count": 1,
        "capacity": 1,
        "is_full": True,
    }


@pytest.mark.asyncio
async def test_join_twice_returns_conflict_code(client: AsyncClient, organizer_headers):
    """Second join answers 409 with ALREADY_CONFIRMED."""
    event_id = await create_event(client, organizer_headers)
    await join(client, event_id, 10)

    response = await join(client, event_id, 10)

    assert response.status_code == 409
    assert response.json()["code"] == "ALREADY_CONFIRMED"


@pytest.mark.asyncio
async def test_join_full_event_without_waitlist(client: AsyncClient, organizer_headers):
    """Full event with the waitlist off answers WAITLIST_DISABLED."""
    event_id = await create_event(client, organizer_headers, waitlist_enabled=False)
    await join(client, event_id, 10)

    response = await join(client, event_id, 11)

    assert response.status_code == 409
    assert response.json()["code"] == "WAITLIST_DISABLED"


@pytest.mark.asyncio
async def test_join_requires_auth(client: AsyncClient, organizer_headers):
    """RSVP without a bearer token returns 401."""
    event_id = await create_event(client, organizer_headers)
    response = await client.post(f"/api/v1/events/{event_id}/rsvp/")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_leave_promotes_next(client: AsyncClient, organizer_headers):
    """Leaving hands the slot to the oldest waiter."""
    event_id = await create_event(client, organizer_headers)
    await join(client, event_id, 10)
    await join(client, event_id, 11)

    response = await client.delete(f"/api/v1/events/{event_id}/rsvp/", headers=auth_headers_for(10))

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "CANCELLED"
    assert data["promoted_user_id"] == 11
    assert data["promoted_user_ids"] == [11]
    assert data["summary"]["confirmed_count"] == 1
    assert data["summary"]["waitlist_count"] == 0


@pytest.mark.asyncio
async def test_organizer_cannot_leave(client: AsyncClient, organizer_headers):
    """Organizer leaving their own event is rejected."""
    event_id = await create_event(client, organizer_headers)

    response = await client.delete(f"/api/v1/events/{event_id}/rsvp/", headers=organizer_headers)

    assert response.status_code == 409
    assert response.json()["code"] == "ORGANIZER_CANNOT_LEAVE"


@pytest.mark.asyncio
async def test_leave_without_rsvp(client: AsyncClient, organizer_headers):
    """Leaving without an RSVP answers NOT_ATTENDING."""
    event_id = await create_event(client, organizer_headers)

    response = await client.delete(f"/api/v1/events/{event_id}/rsvp/", headers=auth_headers_for(10))

    assert response.status_code == 409
    assert response.json()["code"] == "NOT_ATTENDING"


@pytest.mark.asyncio
async def test_public_summary(client: AsyncClient, organizer_headers):
    """Summary endpoint reports counts without authentication."""
    event_id = await create_event(client, organizer_headers, max_attendees=3)
    await join(client, event_id, 10)

    response = await client.get(f"/api/v1/events/{event_id}/rsvp/summary")

    assert response.status_code == 200
    assert response.json() == {"confirmed_count": 1, "waitlist_count": 0, "capacity": 3, "is_full": False}


@pytest.mark.asyncio
async def test_summary_unknown_event(client: AsyncClient):
    """Summary of a missing event returns 404."""
    response = await client.get("/api/v1/events/999/rsvp/summary")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_organizer_dashboard(client: AsyncClient, organizer_headers):
    """Dashboard lists the roster with summary and feedback."""
    event_id = await create_event(client, organizer_headers)
    await join(client, event_id, 10)
    await join(client, event_id, 11)
    await client.post(
        f"/api/v1/events/{event_id}/feedback/",
        json={"rating": 5, "comment": "Superb"},
        headers=auth_headers_for(10),
    )

    response = await client.get(f"/api/v1/events/{event_id}/attendance/", headers=organizer_headers)

    assert response.status_code == 200
    data = response.json()
    assert [rsvp["user_id"] for rsvp in data["rsvps"]] == [ORGANIZER_ID, 10, 11]
    assert data["summary"]["waitlist_count"] == 1
    assert data["feedback"][0]["comment"] == "Superb"
    assert data["meta"] == {"total_rsvps": 3, "total_feedback": 1, "average_rating": 5.0}


@pytest.mark.asyncio
async def test_dashboard_forbidden_for_attendee(client: AsyncClient, organizer_headers):
    """Attendees cannot open the organizer dashboard."""
    event_id = await create_event(client, organizer_headers)
    await join(client, event_id, 10)

    response = await client.get(f"/api/v1/events/{event_id}/attendance/", headers=auth_headers_for(10))

    assert response.status_code == 403
    assert response.json()["code"] == "INSUFFICIENT_PRIVILEGE"


@pytest.mark.asyncio
async def test_organizer_actions(client: AsyncClient, organizer_headers):
    """Every organizer action is reachable and returns the new summary."""
    event_id = await create_event(client, organizer_headers, max_attendees=2)
    await join(client, event_id, 10)
    base = f"/api/v1/events/{event_id}/attendance"

    confirm = await client.post(f"{base}/11/confirm", headers=organizer_headers)
    assert confirm.status_code == 200
    assert confirm.json()["action"] == "confirm"
    assert confirm.json()["target_user_id"] == 11
    assert confirm.json()["summary"]["is_full"] is True

    full = await client.post(f"{base}/12/confirm", headers=organizer_headers)
    assert full.status_code == 409
    assert full.json()["code"] == "EVENT_FULL"

    check_in = await client.post(f"{base}/10/check-in", headers=organizer_headers)
    assert check_in.status_code == 200
    again = await client.post(f"{base}/10/check-in", headers=organizer_headers)
    assert again.json()["code"] == "ALREADY_CHECKED_IN"

    no_show = await client.post(f"{base}/11/no-show", headers=organizer_headers)
    assert no_show.status_code == 200
    assert no_show.json()["summary"]["confirmed_count"] == 2

    waitlist = await client.post(f"{base}/11/waitlist", headers=organizer_headers)
    assert waitlist.json()["summary"]["waitlist_count"] == 1

    cancel = await client.post(f"{base}/11/cancel", headers=organizer_headers)
    assert cancel.status_code == 200
    assert cancel.json()["summary"] == {"confirmed_count": 1, "waitlist_count": 0, "capacity": 2, "is_full": False}


@pytest.mark.asyncio
async def test_unknown_organizer_action(client: AsyncClient, organizer_headers):
    """An unknown action name is a validation error."""
    event_id = await create_event(client, organizer_headers)
    response = await client.post(f"/api/v1/events/{event_id}/attendance/10/promote", headers=organizer_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_organizer_sweep_and_log(client: AsyncClient, organizer_headers):
    """Organizer sweep promotes waiters and the log records it."""
    event_id = await create_event(client, organizer_headers)
    await join(client, event_id, 10)
    await join(client, event_id, 11)
    await client.post(f"/api/v1/events/{event_id}/attendance/10/waitlist", headers=organizer_headers)

    sweep = await client.post(f"/api/v1/events/{event_id}/attendance/sweep", headers=organizer_headers)
    assert sweep.status_code == 200
    assert sweep.json()["promoted"] == 1

    log = await client.get(f"/api/v1/events/{event_id}/attendance/log", headers=organizer_headers)
    assert log.status_code == 200
    entries = log.json()
    assert entries[-1]["user_id"] == 11
    assert entries[-1]["action"] == "RSVP_CONFIRMED"
    assert entries[-1]["reason"] == "waitlist-promoted"
    assert entries[-2]["metadata"] == {"actor_id": ORGANIZER_ID}


@pytest.mark.asyncio
async def test_feedback_endpoints(client: AsyncClient, organizer_headers):
    """Feedback can be submitted and listed."""
    event_id = await create_event(client, organizer_headers)
    url = f"/api/v1/events/{event_id}/feedback/"

    created = await client.post(url, json={"rating": 4}, headers=auth_headers_for(10))
    assert created.status_code == 201
    assert created.json()["user_id"] == 10

    invalid = await client.post(url, json={"rating": 7}, headers=auth_headers_for(10))
    assert invalid.status_code == 422
    assert invalid.json()["code"] == "INVALID_FEEDBACK_RATING"

    on_behalf = await client.post(url, json={"rating": 3, "target_user_id": 12}, headers=organizer_headers)
    assert on_behalf.status_code == 201
    assert on_behalf.json()["user_id"] == 12

    forbidden = await client.post(url, json={"rating": 3, "target_user_id": 12}, headers=auth_headers_for(10))
    assert forbidden.status_code == 403

    listed = await client.get(url)
    assert listed.status_code == 200
    assert {item["user_id"] for item in listed.json()} == {10, 12}


@pytest.mark.asyncio
async def test_cron_sweep_requires_api_key(client: AsyncClient):
    """Scheduler endpoint rejects a missing or wrong API key."""
    missing = await client.post("/api/v1/cron/sweep-waitlists", json={"hours_ahead": 24})
    assert missing.status_code == 401

    wrong = await client.post(
        "/api/v1/cron/sweep-waitlists",
        json={"hours_ahead": 24},
        headers={"X-API-Key": "nope"},
    )
    assert wrong.status_code == 401


@pytest.mark.asyncio
async def test_cron_sweep(client: AsyncClient, organizer_headers):
    """Scheduler sweep promotes waiters for events inside the window."""
    event_id = await create_event(
        client,
        organizer_headers,
        start_time=(datetime.now(timezone.utc) + timedelta(hours=3)).isoformat(),
    )
    await join(client, event_id, 10)
    await join(client, event_id, 11)
    await client.post(f"/api/v1/events/{event_id}/attendance/10/waitlist", headers=organizer_headers)

    response = await client.post(
        "/api/v1/cron/sweep-waitlists",
        json={"hours_ahead": 6},
        headers={"X-API-Key": CRON_API_KEY},
    )

    assert response.status_code == 200
    assert response.json() == {
        "hours_ahead": 6,
        "results": [{"event_id": event_id, "promoted": 1}],
        "total_promoted": 1,
    }


@pytest.mark.asyncio
async def test_cron_sweep_default_window(client: AsyncClient):
    """Without a body the configured default window is used."""
    response = await client.post("/api/v1/cron/sweep-waitlists", headers={"X-API-Key": CRON_API_KEY})

    assert response.status_code == 200
    assert response.json()["hours_ahead"] == 24
    assert response.json()["results"] == []


@pytest.mark.asyncio
async def test_cron_sweep_rejects_bad_window(client: AsyncClient):
    """Negative window is rejected by request validation."""
    response = await client.post(
        "/api/v1/cron/sweep-waitlists",
        json={"hours_ahead": -5},
        headers={"X-API-Key": CRON_API_KEY},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_cron_sweep_misconfigured_default_window(client: AsyncClient, monkeypatch):
    """A non-positive default window answers 400 with its own error code."""
    monkeypatch.setattr(get_settings(), "SWEEP_DEFAULT_HOURS_AHEAD", 0)

    response = await client.post("/api/v1/cron/sweep-waitlists", headers={"X-API-Key": CRON_API_KEY})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SWEEP_WINDOW"


def test_value_errors_are_not_mapped_to_bad_request():
    """Only the attendance taxonomy is translated; other ValueErrors stay server errors."""
    assert ValueError not in app.exception_handlers


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient, organizer_headers):
    """Health reports the cache state and metrics expose transitions."""
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["cache"] == {"enabled": False}

    event_id = await create_event(client, organizer_headers)
    await join(client, event_id, 10)

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "attendance_transitions_total" in metrics.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    """Incoming X-Request-ID is echoed on the response."""
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
