import pytest
from sqlalchemy import select

from app.models.trips.trip_tracker import TripTracker
from conftest import add_destination, make_ticket, make_tracker, make_trip


@pytest.mark.asyncio
async def test_validate_known_ticket(client, db, regular_user):
    await make_ticket(db, user=regular_user, metadata={"destination": "Cebu"})

    body = (await client.get("/api/tickets/TKT-0001/validate")).json()

    assert body["success"] is True
    assert body["valid"] is True
    assert body["ticket"]["ticketId"] == "TKT-0001"
    assert body["ticket"]["metadata"] == {"destination": "Cebu"}
    assert body["ticket"]["user"]["email"] == "user@example.com"


@pytest.mark.asyncio
async def test_validate_unknown_ticket(client):
    response = await client.get("/api/tickets/TKT-NOPE/validate")

    assert response.status_code == 200
    assert response.json() == {"success": True, "valid": False, "message": "Ticket not found"}


@pytest.mark.asyncio
async def test_search_by_ticket_id(client, db):
    await make_ticket(db, ticket_type="AI_RECOMMENDATION")

    body = (await client.post("/api/tickets/search", json={"ticketId": "TKT-0001"})).json()

    assert body["type"] == "ticket"
    assert body["ticket"]["ticketType"] == "AI_RECOMMENDATION"


@pytest.mark.asyncio
async def test_search_falls_back_to_trackers_without_counting(client, db, trip, session_factory):
    await add_destination(db, trip, "Kawasan Falls", order_index=0, city="Badian")
    await make_tracker(db, trip, access_count=4)

    response = await client.post("/api/tickets/search", json={"ticketId": "TRKABC1234567"})

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "trip"
    assert body["trip"]["id"] == trip.id
    assert body["trip"]["destinations"][0]["name"] == "Kawasan Falls"
    assert body["tracker"]["trackerId"] == "TRKABC1234567"
    assert body["tracker"]["accessCount"] == 4
    assert body["tracker"]["startDateFormatted"] == "January 1, 2025"
    assert "trip" not in body["tracker"]

    async with session_factory() as session:
        count = await session.scalar(
            select(TripTracker.access_count).where(TripTracker.tracker_id == "TRKABC1234567")
        )
    assert count == 4


@pytest.mark.asyncio
async def test_search_unknown_id(client):
    response = await client.post("/api/tickets/search", json={"ticketId": "TKT-NOPE"})

    assert response.status_code == 404
    assert response.json()["message"] == "No ticket or trip tracker found with this ID"


@pytest.mark.asyncio
async def test_search_by_email(client, db, trip, regular_user):
    await make_ticket(db, ticket_id="TKT-0001", user=regular_user)
    await make_ticket(db, ticket_id="TKT-0002")
    undated = await make_trip(db, trip_name="Bohol Getaway", destination="Bohol")
    await make_tracker(db, undated, tracker_id="TRKUSER000001", email="user@example.com")
    await make_tracker(db, trip, tracker_id="TRKOTHER00002", email="other@example.com")

    body = (await client.post("/api/tickets/search", json={"email": "User@Example.com"})).json()

    assert body["type"] == "email_search"
    assert [t["ticketId"] for t in body["tickets"]] == ["TKT-0001"]
    assert [t["trackerId"] for t in body["trip_trackers"]] == ["TRKUSER000001"]
    tracker = body["trip_trackers"][0]
    assert tracker["startDateFormatted"] == "Not specified"
    assert tracker["trip"]["tripName"] == "Bohol Getaway"


@pytest.mark.asyncio
async def test_search_needs_ticket_id_or_email(client):
    response = await client.post("/api/tickets/search", json={"query": "beach"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing parameters", "message": "Either ticketId or email must be provided"}
