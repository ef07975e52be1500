"""
Tests for event CRUD endpoints.
"""

import pytest
import pytest_asyncio
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from app.models.category import EventCategory
from app.models.event import EventStatus
from app.models.participant import ParticipantStatus


def event_payload(**overrides) -> dict:
    payload = {
        "title": "Python Conference 2026",
        "description": "Annual Python gathering",
        "location": "Convention Center",
        "date": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
        "start_time": "09:00:00",
        "end_time": "17:00:00",
        "max_participants": 500,
        "status": "published",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, organizer_headers, organizer):
    """Authenticated user can create an event and becomes its organizer."""
    response = await client.post("/api/v1/events/", json=event_payload(), headers=organizer_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Python Conference 2026"
    assert data["max_participants"] == 500
    assert data["current_participants"] == 0
    assert data["organizer_id"] == organizer.id
    assert data["is_full"] is False


@pytest.mark.asyncio
async def test_create_event_defaults_to_draft(client: AsyncClient, organizer_headers):
    payload = event_payload()
    del payload["status"]
    response = await client.post("/api/v1/events/", json=payload, headers=organizer_headers)
    assert response.status_code == 201
    assert response.json()["status"] == "draft"


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient):
    """Unauthenticated request returns 401."""
    response = await client.post("/api/v1/events/", json=event_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_invalid_token(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(),
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_past_date(client: AsyncClient, organizer_headers):
    """Event with past date is rejected by validation."""
    past_date = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    response = await client.post("/api/v1/events/", json=event_payload(date=past_date), headers=organizer_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_event_end_before_start(client: AsyncClient, organizer_headers):
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(start_time="18:00:00", end_time="10:00:00"),
        headers=organizer_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_event_zero_capacity(client: AsyncClient, organizer_headers):
    response = await client.post(
        "/api/v1/events/", json=event_payload(max_participants=0), headers=organizer_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_events_only_published(client: AsyncClient, make_event):
    """Drafts and cancelled events stay out of the public listing."""
    published = await make_event()
    await make_event(status=EventStatus.DRAFT)
    await make_event(status=EventStatus.CANCELLED)

    response = await client.get("/api/v1/events/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["events"][0]["id"] == published.id
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_list_events_includes_own_events_for_organizer(
    client: AsyncClient, make_event, organizer_headers, alice_headers
):
    """Authenticated callers also see their own unpublished events."""
    published = await make_event()
    draft = await make_event(status=EventStatus.DRAFT)

    response = await client.get("/api/v1/events/", headers=organizer_headers)
    data = response.json()
    assert data["total"] == 2
    assert {e["id"] for e in data["events"]} == {published.id, draft.id}
    assert data["cached"] is False

    response = await client.get("/api/v1/events/", headers=alice_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["events"][0]["id"] == published.id


@pytest.mark.asyncio
async def test_list_events_pagination(client: AsyncClient, make_event):
    for days in range(1, 6):
        await make_event(days_ahead=days)

    response = await client.get("/api/v1/events/?page=2&page_size=2")
    data = response.json()
    assert data["total"] == 5
    assert len(data["events"]) == 2
    assert data["page"] == 2


@pytest.mark.asyncio
async def test_get_event_anonymous(client: AsyncClient, test_event):
    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == test_event.id
    assert data["is_organizer"] is False
    assert data["is_registered"] is False
    assert data["can_comment"] is False


@pytest.mark.asyncio
async def test_get_event_as_confirmed_participant(
    client: AsyncClient, test_event, alice, alice_headers, add_participant
):
    await add_participant(test_event, alice, ParticipantStatus.CONFIRMED)

    response = await client.get(f"/api/v1/events/{test_event.id}", headers=alice_headers)
    data = response.json()
    assert data["is_registered"] is True
    assert data["registration_status"] == "confirmed"
    assert data["can_comment"] is True
    assert data["can_rate"] is False


@pytest.mark.asyncio
async def test_get_event_as_organizer(client: AsyncClient, test_event, organizer_headers):
    response = await client.get(f"/api/v1/events/{test_event.id}", headers=organizer_headers)
    assert response.json()["is_organizer"] is True


@pytest.mark.asyncio
async def test_draft_hidden_from_others(client: AsyncClient, make_event, alice_headers, organizer_headers):
    draft = await make_event(status=EventStatus.DRAFT)

    response = await client.get(f"/api/v1/events/{draft.id}", headers=alice_headers)
    assert response.status_code == 404

    response = await client.get(f"/api/v1/events/{draft.id}", headers=organizer_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_get_nonexistent_event(client: AsyncClient):
    """Non-existent event returns 404 with the error envelope."""
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "event_not_found"


@pytest.mark.asyncio
async def test_update_event(client: AsyncClient, test_event, organizer_headers, live_updates):
    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"title": "Renamed", "max_participants": 20},
        headers=organizer_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Renamed"
    assert data["max_participants"] == 20
    assert live_updates.updates[-1].type == "event_updated"


@pytest.mark.asyncio
async def test_update_event_not_organizer(client: AsyncClient, test_event, alice_headers):
    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"title": "Hijacked"}, headers=alice_headers
    )
    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "permission_denied"


@pytest.mark.asyncio
async def test_update_capacity_below_confirmed(client: AsyncClient, make_event, organizer_headers):
    event = await make_event(max_participants=5, current_participants=3)

    response = await client.put(
        f"/api/v1/events/{event.id}", json={"max_participants": 2}, headers=organizer_headers
    )
    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "invalid_capacity"


@pytest.mark.asyncio
async def test_update_schedule_end_before_existing_start(client: AsyncClient, test_event, organizer_headers):
    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"end_time": "08:00:00"}, headers=organizer_headers
    )
    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "invalid_schedule"


@pytest.mark.asyncio
async def test_delete_event(client: AsyncClient, test_event, organizer_headers, alice_headers):
    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=alice_headers)
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=organizer_headers)
    assert response.status_code == 204

    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 404

    response = await client.post(f"/api/v1/events/{test_event.id}/register", headers=alice_headers)
    assert response.status_code == 404


@pytest_asyncio.fixture
async def categories(db_session) -> dict[str, EventCategory]:
    sports = EventCategory(name="Sports", description="Matches and tournaments")
    music = EventCategory(name="Music Concert")
    db_session.add_all([sports, music])
    await db_session.commit()
    return {"sports": sports, "music": music}


@pytest.mark.asyncio
async def test_create_event_with_categories(client: AsyncClient, organizer_headers, categories):
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(category_ids=[categories["sports"].id, categories["music"].id]),
        headers=organizer_headers,
    )
    assert response.status_code == 201
    names = [c["name"] for c in response.json()["categories"]]
    assert names == ["Music Concert", "Sports"]

    event_id = response.json()["id"]
    response = await client.get(f"/api/v1/events/{event_id}")
    assert [c["name"] for c in response.json()["categories"]] == ["Music Concert", "Sports"]


@pytest.mark.asyncio
async def test_create_event_unknown_category(client: AsyncClient, organizer_headers, categories):
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(category_ids=[categories["sports"].id, 9999]),
        headers=organizer_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "invalid_category"

    response = await client.get("/api/v1/events/")
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_update_event_categories(client: AsyncClient, organizer_headers, categories):
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(category_ids=[categories["sports"].id]),
        headers=organizer_headers,
    )
    event_id = response.json()["id"]

    response = await client.put(
        f"/api/v1/events/{event_id}",
        json={"category_ids": [categories["music"].id]},
        headers=organizer_headers,
    )
    assert response.status_code == 200
    assert [c["name"] for c in response.json()["categories"]] == ["Music Concert"]

    # Omitting category_ids leaves them untouched
    response = await client.put(f"/api/v1/events/{event_id}", json={"title": "Renamed"}, headers=organizer_headers)
    assert [c["name"] for c in response.json()["categories"]] == ["Music Concert"]

    response = await client.put(f"/api/v1/events/{event_id}", json={"category_ids": []}, headers=organizer_headers)
    assert response.json()["categories"] == []


@pytest.mark.asyncio
async def test_list_categories_with_event_counts(client: AsyncClient, organizer_headers, categories):
    for _ in range(2):
        await client.post(
            "/api/v1/events/",
            json=event_payload(category_ids=[categories["sports"].id]),
            headers=organizer_headers,
        )

    response = await client.get("/api/v1/events/categories")
    assert response.status_code == 200
    items = response.json()["items"]
    assert [(c["name"], c["events_count"]) for c in items] == [("Music Concert", 0), ("Sports", 2)]
    assert items[1]["description"] == "Matches and tournaments"


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["cache"] == {"status": "disabled"}

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "participation_operations_total" in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
