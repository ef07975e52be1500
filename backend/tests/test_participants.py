"""
Tests for participation endpoints.
"""

import pytest
from httpx import AsyncClient

from app.models.participant import ParticipantStatus
from app.services.event_store import EventStore

from .conftest import SerializationFailure, failing_participation_lookup


@pytest.mark.asyncio
async def test_register(client: AsyncClient, test_event, alice, alice_headers):
    response = await client.post(f"/api/v1/events/{test_event.id}/register", headers=alice_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["participant"]["user_id"] == alice.id
    assert data["participant"]["status"] == "pending"
    assert data["event"]["current_participants"] == 0
    assert data["warnings"] == []


@pytest.mark.asyncio
async def test_register_unauthenticated(client: AsyncClient, test_event):
    response = await client.post(f"/api/v1/events/{test_event.id}/register")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_twice(client: AsyncClient, test_event, alice_headers):
    await client.post(f"/api/v1/events/{test_event.id}/register", headers=alice_headers)
    response = await client.post(f"/api/v1/events/{test_event.id}/register", headers=alice_headers)
    assert response.status_code == 409
    assert response.json()["error"]["kind"] == "already_registered"


@pytest.mark.asyncio
async def test_register_full_event(client: AsyncClient, make_event, alice_headers):
    event = await make_event(max_participants=1, current_participants=1)
    response = await client.post(f"/api/v1/events/{event.id}/register", headers=alice_headers)
    assert response.status_code == 409
    assert response.json()["error"]["kind"] == "event_full"


@pytest.mark.asyncio
async def test_register_lock_contention_returns_conflict(client: AsyncClient, test_event, alice_headers, monkeypatch):
    lookup, _ = failing_participation_lookup(SerializationFailure("could not serialize access"))
    monkeypatch.setattr(EventStore, "find_participation", lookup)

    response = await client.post(f"/api/v1/events/{test_event.id}/register", headers=alice_headers)
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "concurrency_conflict"


@pytest.mark.asyncio
async def test_register_storage_failure_returns_500(client: AsyncClient, test_event, alice_headers, monkeypatch):
    lookup, _ = failing_participation_lookup(Exception("disk I/O error"))
    monkeypatch.setattr(EventStore, "find_participation", lookup)

    response = await client.post(f"/api/v1/events/{test_event.id}/register", headers=alice_headers)
    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "storage_unavailable"


@pytest.mark.asyncio
async def test_unregister(client: AsyncClient, test_event, alice_headers):
    await client.post(f"/api/v1/events/{test_event.id}/register", headers=alice_headers)

    response = await client.post(f"/api/v1/events/{test_event.id}/unregister", headers=alice_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["previous_status"] == "pending"
    assert data["participant"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_unregister_not_registered(client: AsyncClient, test_event, alice_headers):
    response = await client.post(f"/api/v1/events/{test_event.id}/unregister", headers=alice_headers)
    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "not_registered"


@pytest.mark.asyncio
async def test_confirm_participant(client: AsyncClient, test_event, alice, organizer_headers, add_participant):
    participant = await add_participant(test_event, alice)

    response = await client.put(
        f"/api/v1/events/{test_event.id}/participants/{participant.id}/status",
        json={"status": "confirmed"},
        headers=organizer_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["old_status"] == "pending"
    assert data["new_status"] == "confirmed"
    assert data["changed"] is True
    assert data["event"]["current_participants"] == 1

    detail = await client.get(f"/api/v1/events/{test_event.id}")
    assert detail.json()["current_participants"] == 1


@pytest.mark.asyncio
async def test_status_update_by_participant_denied(
    client: AsyncClient, test_event, alice, alice_headers, add_participant
):
    participant = await add_participant(test_event, alice)

    response = await client.put(
        f"/api/v1/events/{test_event.id}/participants/{participant.id}/status",
        json={"status": "confirmed"},
        headers=alice_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_status_update_invalid_status(client: AsyncClient, test_event, alice, organizer_headers, add_participant):
    participant = await add_participant(test_event, alice)

    response = await client.put(
        f"/api/v1/events/{test_event.id}/participants/{participant.id}/status",
        json={"status": "waitlisted"},
        headers=organizer_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "invalid_status"


@pytest.mark.asyncio
async def test_status_update_unknown_participant(client: AsyncClient, test_event, organizer_headers):
    response = await client.put(
        f"/api/v1/events/{test_event.id}/participants/99999/status",
        json={"status": "confirmed"},
        headers=organizer_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "participant_not_found"


@pytest.mark.asyncio
async def test_list_participants(
    client: AsyncClient, test_event, alice, bob, organizer_headers, add_participant
):
    await add_participant(test_event, alice, ParticipantStatus.CONFIRMED)
    await add_participant(test_event, bob, ParticipantStatus.PENDING)

    response = await client.get(f"/api/v1/events/{test_event.id}/participants", headers=organizer_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {item["user"]["username"] for item in data["items"]} == {"alice", "bob"}

    response = await client.get(
        f"/api/v1/events/{test_event.id}/participants?status=pending", headers=organizer_headers
    )
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["user_id"] == bob.id


@pytest.mark.asyncio
async def test_list_participants_requires_organizer(client: AsyncClient, test_event, alice_headers):
    response = await client.get(f"/api/v1/events/{test_event.id}/participants", headers=alice_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_participant(
    client: AsyncClient, test_event, alice, alice_headers, bob_headers, organizer_headers, add_participant
):
    participant = await add_participant(test_event, alice)
    url = f"/api/v1/events/{test_event.id}/participants/{participant.id}"

    response = await client.get(url, headers=alice_headers)
    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice.id

    assert (await client.get(url, headers=organizer_headers)).status_code == 200
    assert (await client.get(url, headers=bob_headers)).status_code == 403


@pytest.mark.asyncio
async def test_reconcile(client: AsyncClient, make_event, alice, organizer_headers, add_participant):
    event = await make_event(max_participants=3, current_participants=0)
    await add_participant(event, alice, ParticipantStatus.CONFIRMED)

    response = await client.post(f"/api/v1/events/{event.id}/participants/reconcile", headers=organizer_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["drift"] == 1
    assert data["confirmed_count"] == 1


@pytest.mark.asyncio
async def test_last_seat_goes_to_one_confirmation(
    client: AsyncClient, make_event, alice, bob, organizer_headers, add_participant
):
    event = await make_event(max_participants=1)
    first = await add_participant(event, alice)
    second = await add_participant(event, bob)

    ok = await client.put(
        f"/api/v1/events/{event.id}/participants/{first.id}/status",
        json={"status": "confirmed"},
        headers=organizer_headers,
    )
    full = await client.put(
        f"/api/v1/events/{event.id}/participants/{second.id}/status",
        json={"status": "confirmed"},
        headers=organizer_headers,
    )
    assert ok.status_code == 200
    assert full.status_code == 409
    assert full.json()["error"]["kind"] == "event_full"
