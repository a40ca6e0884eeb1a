from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.controllers.calendar_controller import router as calendar_router
from backend.controllers.health_controller import router as health_router
from backend.repository.data_repository import DataRepository
from backend.services.availability_service import ManagerAvailabilityService
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str, default_strategy: str = "runtime"):
    get_settings.cache_clear()
    base = get_settings()
    return replace(
        base,
        database_path=tmp_path / filename,
        default_strategy=default_strategy,
    )


def _build_test_app(tmp_path, default_strategy: str = "runtime") -> FastAPI:
    settings = _build_test_settings(tmp_path, "calendar.db", default_strategy)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_data()

    app = FastAPI()
    app.include_router(health_router)
    app.include_router(calendar_router)
    app.state.repository = repository
    app.state.availability_service = ManagerAvailabilityService(
        repository=repository,
        settings=settings,
    )
    return app


QUERY = {
    "date": "2024-05-03",
    "products": ["Heatpumps"],
    "language": "English",
    "rating": "Silver",
}

EXPECTED = [
    {"start_date": "2024-05-03T10:30:00.000Z", "available_count": 1},
    {"start_date": "2024-05-03T11:00:00.000Z", "available_count": 1},
    {"start_date": "2024-05-03T11:30:00.000Z", "available_count": 2},
]


@pytest.mark.parametrize("strategy", ["runtime", "database"])
def test_query_endpoint_with_explicit_strategy(tmp_path, strategy):
    client = TestClient(_build_test_app(tmp_path))

    response = client.post(f"/calendar/query?strategy={strategy}", json=QUERY)

    assert response.status_code == 200
    assert response.json() == EXPECTED


def test_query_endpoint_uses_configured_default_strategy(tmp_path):
    client = TestClient(_build_test_app(tmp_path, default_strategy="database"))

    response = client.post("/calendar/query", json=QUERY)

    assert response.status_code == 200
    assert response.json() == EXPECTED


def test_query_endpoint_returns_empty_list_when_fully_booked(tmp_path):
    client = TestClient(_build_test_app(tmp_path))

    response = client.post(
        "/calendar/query",
        json={
            "date": "2024-05-04",
            "products": ["SolarPanels", "Heatpumps"],
            "language": "German",
            "rating": "Gold",
        },
    )

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.parametrize(
    "payload",
    [
        {**QUERY, "products": []},
        {**QUERY, "products": ["Batteries"]},
        {**QUERY, "language": "French"},
        {**QUERY, "rating": "Platinum"},
        {**QUERY, "date": "2024-13-40"},
        {**QUERY, "unexpected": True},
        {key: value for key, value in QUERY.items() if key != "rating"},
    ],
)
def test_query_endpoint_rejects_invalid_payloads(tmp_path, payload):
    client = TestClient(_build_test_app(tmp_path))

    response = client.post("/calendar/query", json=payload)

    assert response.status_code == 422


def test_query_endpoint_rejects_unknown_strategy(tmp_path):
    client = TestClient(_build_test_app(tmp_path))

    response = client.post("/calendar/query?strategy=cache", json=QUERY)

    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["query", "strategy"]


def test_query_endpoint_without_service_is_unavailable():
    app = FastAPI()
    app.include_router(calendar_router)
    client = TestClient(app)

    response = client.post("/calendar/query", json=QUERY)

    assert response.status_code == 503


@pytest.mark.parametrize("path", ["/", "/health"])
def test_health_endpoints(path):
    app = FastAPI()
    app.include_router(health_router)
    client = TestClient(app)

    response = client.get(path)

    assert response.status_code == 200
    assert response.json() == {"health": "alive"}
