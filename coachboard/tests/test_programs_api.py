# tests/test_programs_api.py
"""
In-process HTTP checks for the program routes, served through httpx's ASGI
transport (no lifespan, no network).
"""
from datetime import date

import httpx
import pytest

import main
from coachboard.api import programs
from coachboard.services.history_composer import ProgramHistoryService
from coachboard.services.record_store import RecordStore
from coachboard.tests.rows import assignment_row, plan_row, program_row


@pytest.fixture
def seeded_client(fake_supabase_client):
    fake_supabase_client.seed("leads", {"id": "L", "customer_id": "C"})
    fake_supabase_client.seed(
        "budgets",
        program_row("P", nutrition_targets={"calories": 1800, "protein": 140}, steps_goal=8000),
    )
    fake_supabase_client.seed("budget_assignments", assignment_row("P", customer_id="C", id="asg-1"))
    fake_supabase_client.seed(
        "nutrition_plans",
        plan_row(id="n-old", budget_id="P", start_date="2024-01-01", customer_id="C"),
        plan_row(id="n-new", budget_id="P", start_date="2024-02-01", customer_id="C"),
    )
    return fake_supabase_client


def _install_service(monkeypatch, fake_client, strict=False):
    service = ProgramHistoryService(
        record_store=RecordStore(client=fake_client, read_timeout=2.0),
        strict=strict,
        today_fn=lambda: date(2024, 7, 1),
    )
    monkeypatch.setattr(programs, "program_history_service", service)
    return service


def _client():
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=main.app), base_url="http://test")


@pytest.mark.asyncio
async def test_root():
    async with _client() as client:
        r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_resolve_returns_camel_case_resolution(monkeypatch, seeded_client):
    _install_service(monkeypatch, seeded_client)

    async with _client() as client:
        r = await client.get("/programs/resolve", params={"lead_id": "L", "customer_id": "C"})

    assert r.status_code == 200
    assert r.headers.get("X-Request-Id")
    body = r.json()
    assert body["ok"] is True
    data = body["data"]
    assert data["status"] == "active"
    assert data["activeProgramId"] == "P"
    assert [p["id"] for p in data["nutritionHistory"]] == ["n-new"]
    assert data["nutritionHistory"][0]["isActive"] is True
    assert data["currentNutrition"]["targets"]["source"] == "program"
    assert data["currentSteps"]["goal"] == {"source": "program", "value": 8000}
    assert data["stepsHistory"][0]["synthetic"] is True
    assert data["assignmentHistory"][0]["isGoverning"] is True


@pytest.mark.asyncio
async def test_resolve_without_ids_is_an_empty_resolution(monkeypatch, fake_supabase_client):
    _install_service(monkeypatch, fake_supabase_client)

    async with _client() as client:
        r = await client.get("/programs/resolve")

    data = r.json()["data"]
    assert data["status"] == "no_active_program"
    assert data["currentWorkout"] is None
    assert data["workoutHistory"] == []


@pytest.mark.asyncio
async def test_governing_assignment_route(monkeypatch, seeded_client):
    _install_service(monkeypatch, seeded_client)

    async with _client() as client:
        found = await client.get("/programs/governing-assignment", params={"lead_id": "L", "customer_id": "C"})
        missing = await client.get("/programs/governing-assignment", params={"lead_id": "nobody"})

    assert found.json()["data"]["programId"] == "P"
    assert found.json()["data"]["id"] == "asg-1"
    assert missing.json() == {"ok": True, "data": None}


@pytest.mark.asyncio
async def test_strict_mode_store_failure_is_503(monkeypatch, seeded_client):
    seeded_client.failures["steps_plans"] = RuntimeError("connection reset")
    _install_service(monkeypatch, seeded_client, strict=True)

    async with _client() as client:
        r = await client.get("/programs/resolve", params={"customer_id": "C"})

    assert r.status_code == 503
    body = r.json()
    assert body["ok"] is False
    assert body["error"] == "record_store_unavailable"
    assert body["diagnostics"]["kind"] == "steps"


@pytest.mark.asyncio
async def test_degraded_read_is_reported_in_diagnostics(monkeypatch, seeded_client):
    seeded_client.failures["steps_plans"] = RuntimeError("connection reset")
    _install_service(monkeypatch, seeded_client)

    async with _client() as client:
        r = await client.get("/programs/resolve", params={"customer_id": "C"})

    assert r.status_code == 200
    data = r.json()["data"]
    assert "steps" in data["diagnostics"]["degraded"]
    assert data["stepsHistory"][0]["synthetic"] is True


@pytest.mark.asyncio
async def test_ready_reports_store_state(monkeypatch):
    async def unhealthy(timeout=2.0):
        return False

    monkeypatch.setattr(main, "_store_healthy", unhealthy)
    monkeypatch.setattr(main.app.state, "supabase_healthy", None, raising=False)

    async with _client() as client:
        r = await client.get("/ready")

    assert r.status_code == 503
    assert r.json() == {"ready": False, "database": "disconnected"}
