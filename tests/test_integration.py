from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from laundry_dispatch.db import get_session_factory
from laundry_dispatch.errors import ConflictError
from laundry_dispatch.main import create_app
from laundry_dispatch.models.domain import Priority, ServiceStatus
from laundry_dispatch.persistence.tables import CourierRow, HotelRow, ServiceRow
from laundry_dispatch.services.dispatch import service as dispatch_service


@pytest.fixture
def api_client(session_factory) -> TestClient:
    with session_factory.begin() as session:
        session.add_all(
            [
                HotelRow(id="H1", name="Hotel Costa Verde", zone="SUR", latitude=-12.13, longitude=-77.02),
                HotelRow(id="H2", name="Hotel Barranco", zone="SUR", latitude=-12.15, longitude=-77.02),
                CourierRow(id="C1", name="Ana", zone="SUR", created_at=datetime(2026, 1, 1)),
                CourierRow(id="C9", name="Retired", zone="SUR", active=False, created_at=datetime(2026, 1, 2)),
            ]
        )
        for index, (service_id, hotel_id, status, priority) in enumerate(
            [
                ("S1", "H1", ServiceStatus.PENDING_PICKUP, Priority.NORMAL),
                ("S2", "H1", ServiceStatus.PENDING_PICKUP, Priority.NORMAL),
                ("S3", "H2", ServiceStatus.IN_PROCESS, Priority.HIGH),
            ]
        ):
            session.add(
                ServiceRow(
                    id=service_id,
                    hotel_id=hotel_id,
                    guest_name=f"Guest {service_id}",
                    room_number="501",
                    bag_count=2,
                    priority=priority.value,
                    status=status.value,
                    estimated_pickup_at=datetime(2026, 10, 20, 14, 0),
                    estimated_delivery_at=datetime(2026, 10, 20, 18, 0),
                    created_at=datetime(2026, 10, 19, 10, index),
                )
            )

    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    return TestClient(app)


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/api/health").json() == {"status": "ok"}
    database = api_client.get("/api/health/database").json()
    assert database["connected"] is True
    assert database["services_count"] == 3


def test_generate_routes_endpoint(api_client: TestClient) -> None:
    response = api_client.post("/api/routes/generate", json={"date": "2026-10-20", "zones": ["SUR", "NORTE"]})

    assert response.status_code == 200
    payload = response.json()
    assert len(payload["created_routes"]) == 1
    route = payload["created_routes"][0]
    assert route["courier_id"] == "C1"
    assert route["type"] == "mixed"
    assert route["name"] == "Ruta SUR - Mixta 20/10/2026"
    assert [stop["order"] for stop in route["stops"]] == [1, 2]
    assert route["stops"][0]["service_id"] == "S3"
    assert route["stops"][1]["service_ids"] == ["S1", "S2"]
    assert payload["unserved_zones"] == []
    assert {stats["zone"]: stats["services"] for stats in payload["zone_stats"]} == {"SUR": 3, "NORTE": 0}


def test_generate_routes_rejects_unknown_zone(api_client: TestClient) -> None:
    response = api_client.post("/api/routes/generate", json={"date": "2026-10-20", "zones": ["LUNA"]})

    assert response.status_code == 422


def test_generate_courier_route_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/routes/generate/courier",
        json={"courier_id": "C1", "date": "2026-10-20", "route_type": "pickup"},
    )

    assert response.status_code == 200
    route = response.json()["route"]
    assert route["type"] == "pickup"
    assert route["stats"]["total_pickups"] == 2

    again = api_client.post("/api/routes/generate/courier", json={"courier_id": "C1", "date": "2026-10-20", "route_type": "pickup"})
    assert again.status_code == 200
    assert again.json()["route"] is None


@pytest.mark.parametrize("courier_id, expected_status", [("nobody", 404), ("C9", 400)])
def test_generate_courier_route_validates_courier(api_client: TestClient, courier_id: str, expected_status: int) -> None:
    response = api_client.post("/api/routes/generate/courier", json={"courier_id": courier_id, "date": "2026-10-20"})

    assert response.status_code == expected_status


def test_generate_courier_route_conflict_returns_409(api_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def conflicting(*args, **kwargs):
        raise ConflictError(["S1"])

    monkeypatch.setattr(dispatch_service, "generate_route", conflicting)

    response = api_client.post("/api/routes/generate/courier", json={"courier_id": "C1", "date": "2026-10-20"})

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "SERVICE_CONFLICT"


def test_database_failure_returns_503(api_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(dispatch_service, "generate_routes", broken)

    response = api_client.post("/api/routes/generate", json={"date": "2026-10-20"})

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "DATABASE_CONNECTION_ERROR"


def test_list_get_and_delete_routes(api_client: TestClient) -> None:
    created = api_client.post("/api/routes/generate", json={"date": "2026-10-20", "zones": ["SUR"]}).json()
    route_id = created["created_routes"][0]["id"]

    listed = api_client.get("/api/routes", params={"date": "2026-10-20"}).json()
    assert [route["id"] for route in listed] == [route_id]
    assert api_client.get("/api/routes", params={"date": "2026-10-21"}).json() == []

    fetched = api_client.get(f"/api/routes/{route_id}")
    assert fetched.status_code == 200
    assert fetched.json()["stats"]["total_services"] == 3

    deleted = api_client.delete(f"/api/routes/{route_id}")
    assert deleted.status_code == 200
    assert deleted.json()["released_services"] == 3
    assert api_client.get(f"/api/routes/{route_id}").status_code == 404
    assert api_client.delete(f"/api/routes/{route_id}").status_code == 404


def test_delete_routes_by_date(api_client: TestClient) -> None:
    api_client.post("/api/routes/generate", json={"date": "2026-10-20", "zones": ["SUR"]})

    response = api_client.delete("/api/routes", params={"date": "2026-10-20"})

    assert response.status_code == 200
    assert response.json()["deleted_routes"] == 1
    assert response.json()["released_services"] == 3


def test_optimize_route_endpoint(api_client: TestClient) -> None:
    created = api_client.post("/api/routes/generate", json={"date": "2026-10-20", "zones": ["SUR"]}).json()
    route = created["created_routes"][0]
    assert [stop["hotel_id"] for stop in route["stops"]] == ["H2", "H1"]

    response = api_client.post(
        f"/api/routes/{route['id']}/optimize",
        json={"start_latitude": -12.129, "start_longitude": -77.02},
    )

    assert response.status_code == 200
    optimized = response.json()
    assert [stop["hotel_id"] for stop in optimized["stops"]] == ["H1", "H2"]
    assert [stop["order"] for stop in optimized["stops"]] == [1, 2]
    assert optimized["stats"]["total_services"] == 3
    assert api_client.get(f"/api/routes/{route['id']}").json()["stops"][0]["hotel_id"] == "H1"


def test_optimize_route_endpoint_errors(api_client: TestClient, session_factory) -> None:
    with session_factory.begin() as session:
        session.add(HotelRow(id="H4", name="Hostal Sin Mapa", zone="SUR"))
        session.add(
            ServiceRow(
                id="S4",
                hotel_id="H4",
                guest_name="Guest S4",
                room_number="12",
                bag_count=1,
                priority=Priority.NORMAL.value,
                status=ServiceStatus.PENDING_PICKUP.value,
                estimated_pickup_at=datetime(2026, 10, 20, 14, 0),
                created_at=datetime(2026, 10, 19, 11, 0),
            )
        )
    route_id = api_client.post("/api/routes/generate", json={"date": "2026-10-20", "zones": ["SUR"]}).json()[
        "created_routes"
    ][0]["id"]
    start = {"start_latitude": -12.13, "start_longitude": -77.02}

    missing = api_client.post(f"/api/routes/{route_id}/optimize", json=start)
    assert missing.status_code == 400
    assert missing.json()["detail"]["code"] == "HOTEL_WITHOUT_COORDINATES"
    assert missing.json()["detail"]["hotels"] == [{"id": "H4", "name": "Hostal Sin Mapa"}]

    assert api_client.post("/api/routes/unknown/optimize", json=start).status_code == 404
    out_of_range = {"start_latitude": 123.0, "start_longitude": -77.02}
    assert api_client.post(f"/api/routes/{route_id}/optimize", json=out_of_range).status_code == 422
