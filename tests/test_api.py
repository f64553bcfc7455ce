from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.container import container
from app.core.database import get_db
from app.main import app
from domain.rules.time_rules import utcnow

PARK_B = {"latitude": 25.0400, "longitude": 121.5600}


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    container.configure(session_factory=session_factory)
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    container.configure()


@pytest.mark.asyncio
async def test_health_endpoint(client):
    response = await client.get("/health")

    assert response.status_code == 200, f"Health check failed: {response.text}"
    data = response.json()
    assert {"status", "db", "version"}.issubset(data.keys())
    assert data["db"] == "connected"


@pytest.mark.asyncio
async def test_wallet_association_and_username(client):
    first = await client.post("/api/v1/users", json={"wallet_address": "0xAbC123"})
    again = await client.post("/api/v1/users", json={"wallet_address": "0xabc123"})

    assert first.status_code == 200
    assert first.json()["id"] == again.json()["id"]
    assert first.json()["level"] == 1
    user_id = first.json()["id"]

    named = await client.put(f"/api/v1/users/{user_id}/username", json={"username": "walker"})
    assert named.json()["username"] == "walker"

    other = (await client.post("/api/v1/users", json={"wallet_address": "0xfff999"})).json()
    conflict = await client.put(f"/api/v1/users/{other['id']}/username", json={"username": "walker"})
    assert conflict.status_code == 409
    assert conflict.json()["code"] == "USERNAME_CONFLICT"


@pytest.mark.asyncio
async def test_check_in_flow(client, world):
    body = {"user_id": "u1", "location_id": "park_b", **PARK_B}

    response = await client.post("/api/v1/checkins", json=body, headers={"Idempotency-Key": "k-1"})
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["location_name"] == "Park B"
    assert data["tier"] in {"EPIC", "LEGENDARY"}
    assert data["replayed"] is False

    replay = await client.post("/api/v1/checkins", json=body, headers={"Idempotency-Key": "k-1"})
    assert replay.status_code == 201
    assert replay.json()["check_in_id"] == data["check_in_id"]
    assert replay.json()["replayed"] is True

    collection = (await client.get("/api/v1/users/u1/checkins")).json()
    assert collection["total"] == 1

    stats = await client.get("/api/v1/locations/park_b/stats")
    assert stats.json()["total_check_ins"] == 1

    profile = (await client.get("/api/v1/users/u1")).json()
    assert profile["total_points"] == data["total_points"]
    assert profile["check_in_count"] == 1


@pytest.mark.asyncio
async def test_check_in_errors(client, world):
    far = await client.post(
        "/api/v1/checkins",
        json={"user_id": "u1", "location_id": "park_b", "latitude": 25.05, "longitude": 121.56},
    )
    assert far.status_code == 422
    assert far.json()["code"] == "OUT_OF_RANGE"
    assert "request_id" in far.json()

    missing = await client.post("/api/v1/checkins", json={"user_id": "u1", "location_id": "nope", **PARK_B})
    assert missing.status_code == 404
    assert missing.json()["code"] == "LOCATION_NOT_FOUND"

    bad_coords = await client.post(
        "/api/v1/checkins", json={"user_id": "u1", "location_id": "park_b", "latitude": 91, "longitude": 0}
    )
    assert bad_coords.status_code == 422


@pytest.mark.asyncio
async def test_collection_rejects_unknown_tier(client, world):
    assert (await client.get("/api/v1/users/u1/checkins?tier=shiny")).status_code == 422
    assert (await client.get("/api/v1/users/u1/checkins?tier=all")).status_code == 200
    assert (await client.get("/api/v1/users/ghost/checkins")).status_code == 404


@pytest.mark.asyncio
async def test_nearby_locations(client, world):
    response = await client.get("/api/v1/locations", params={**PARK_B, "limit": 2})

    assert response.status_code == 200
    items = response.json()
    assert [i["id"] for i in items][0] == "park_b"
    assert len(items) == 2
    assert items[0]["in_range"] is True
    assert items[0]["base_tier"] == "EPIC"

    assert (await client.get("/api/v1/locations/museum/stats")).status_code == 404


@pytest.mark.asyncio
async def test_quest_claim_endpoint(client, world, make_quest):
    now = utcnow()
    await make_quest(
        "q_one",
        "visit_count",
        {"count": 1},
        reward=500,
        active_from=now - timedelta(days=1),
        active_until=now + timedelta(days=1),
    )
    checkin = await client.post("/api/v1/checkins", json={"user_id": "u1", "location_id": "park_b", **PARK_B})
    assert checkin.json()["quest_updates"][0]["completed_now"] is True

    quests = (await client.get("/api/v1/users/u1/quests")).json()
    assert quests[0]["status"] == "completed"

    claim = await client.post("/api/v1/users/u1/quests/uq_q_one/claim")
    assert claim.json()["outcome"] == "CLAIMED"
    again = await client.post("/api/v1/users/u1/quests/uq_q_one/claim")
    assert again.json()["outcome"] == "QUEST_ALREADY_CLAIMED"

    not_mine = await client.post("/api/v1/users/u1/quests/uq_nope/claim")
    assert not_mine.status_code == 404
