"""Test the FastAPI endpoints."""
import pytest
from httpx import ASGITransport, AsyncClient
from api.app import app


def client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _setup_small_battle(ac: AsyncClient) -> dict:
    """One Foot per side, deployed, battle running."""
    await ac.post("/battle/start", json={"seed": 5})
    await ac.post("/battle/local/setup/add", json={"side": 1, "unit_type_id": "FOOT"})
    await ac.post("/battle/local/setup/add", json={"side": 2, "unit_type_id": "FOOT"})
    await ac.post("/battle/local/setup/lock", json={"side": 1})
    await ac.post("/battle/local/setup/lock", json={"side": 2})
    await ac.post("/battle/local/deploy/place", json={"col": 0, "row": 0})
    response = await ac.post("/battle/local/deploy/place", json={"col": 39, "row": 0})
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_root():
    async with client() as ac:
        response = await ac.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_start_battle():
    """Test starting a new battle."""
    async with client() as ac:
        response = await ac.post("/battle/start", json={"seed": 123})
    assert response.status_code == 200
    assert response.json() == {"battle_id": "local", "seed": 123}


@pytest.mark.asyncio
async def test_get_state():
    """Test getting battle state."""
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 42})
        response = await ac.get("/battle/local/state")

    assert response.status_code == 200
    data = response.json()
    assert data["phase"] == "SETUP"
    assert data["units"] == []
    assert data["sides"]["1"]["budget_left"] == 500


@pytest.mark.asyncio
async def test_recruiting_updates_budget():
    async with client() as ac:
        await ac.post("/battle/start", json={})
        response = await ac.post("/battle/local/setup/add",
                                 json={"side": 1, "unit_type_id": "CAVALRY"})
    assert response.status_code == 200
    side = response.json()["sides"]["1"]
    assert side["budget_left"] == 400
    assert side["composition"]["CAVALRY"] == 1


@pytest.mark.asyncio
async def test_rejected_command_returns_409():
    async with client() as ac:
        await ac.post("/battle/start", json={})
        for _ in range(4):
            await ac.post("/battle/local/setup/add", json={"side": 2, "unit_type_id": "PLANNER"})
        response = await ac.post("/battle/local/setup/add",
                                 json={"side": 2, "unit_type_id": "FOOT"})
        state = (await ac.get("/battle/local/state")).json()
    assert response.status_code == 409
    assert "afford" in response.json()["detail"]
    assert state["sides"]["2"]["budget_left"] == 0


@pytest.mark.asyncio
async def test_invalid_payload_is_422():
    async with client() as ac:
        await ac.post("/battle/start", json={})
        response = await ac.post("/battle/local/setup/add",
                                 json={"side": 3, "unit_type_id": "FOOT"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_full_round_over_http():
    async with client() as ac:
        data = await _setup_small_battle(ac)
        assert data["phase"] == "BATTLE"
        assert data["round"] == 1

        response = await ac.post("/battle/local/round/end")
        assert response.status_code == 200
        data = response.json()
    assert data["active_side"] == 2
    assert data["units"][0]["pos"] == [5, 0]
    assert data["revision"] > 0


@pytest.mark.asyncio
async def test_rally_requires_selection():
    async with client() as ac:
        await _setup_small_battle(ac)
        response = await ac.post("/battle/local/command/rally", json={"col": 3, "row": 3})
        assert response.status_code == 409
        response = await ac.post("/battle/local/command/select", json={"unit_id": 0})
    assert response.status_code == 409  # a Foot is not a command unit


@pytest.mark.asyncio
async def test_get_events():
    """Test retrieving events."""
    async with client() as ac:
        await _setup_small_battle(ac)
        response = await ac.get("/battle/local/events?since=0")

    assert response.status_code == 200
    data = response.json()
    assert data["next_offset"] == len(data["events"])
    kinds = [e["kind"] for e in data["events"]]
    assert "UnitPlaced" in kinds
    assert kinds[-1] == "RoundStarted"


@pytest.mark.asyncio
async def test_reset_and_auto_deploy():
    async with client() as ac:
        await _setup_small_battle(ac)
        response = await ac.post("/battle/local/reset")
        assert response.json()["phase"] == "SETUP"

        await ac.post("/battle/local/setup/add", json={"side": 1, "unit_type_id": "ARCHER"})
        await ac.post("/battle/local/setup/add", json={"side": 2, "unit_type_id": "ARCHER"})
        await ac.post("/battle/local/setup/lock", json={"side": 1})
        await ac.post("/battle/local/setup/lock", json={"side": 2})
        response = await ac.post("/battle/local/deploy/auto")
    assert response.status_code == 200
    assert response.json()["phase"] == "BATTLE"
    assert len(response.json()["units"]) == 2


@pytest.mark.asyncio
async def test_autoplay_needs_battle():
    async with client() as ac:
        await ac.post("/battle/start", json={})
        response = await ac.post("/battle/local/autoplay/start")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_time_control():
    async with client() as ac:
        await ac.post("/battle/start", json={})
        response = await ac.post("/battle/local/time-control?time_compression=5000")
        assert response.json() == {"time_compression": 1000.0}
        response = await ac.get("/battle/local/time-control")
    assert response.json() == {"time_compression": 1000.0}
