import unittest.mock

from fastapi.testclient import TestClient

from coachhub.database import Database
from coachhub.main import create_app
from coachhub.middleware.prometheus_middleware import normalize_path


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"] == {"database": True}
    assert "success" not in body


def test_prometheus_metrics_exposed(client):
    client.get("/health")

    response = client.get("/metrics/prometheus")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "coachhub_http_requests_total" in response.text


def test_normalize_path_collapses_ids():
    assert normalize_path("/api/v1/sessions/01ARZ3NDEKTSV4RRFFQ69G5FAV/start") == "/api/v1/sessions/:id/start"
    assert normalize_path("/api/v1/courses/42") == "/api/v1/courses/:id"
    assert normalize_path("/api/v1/courses") == "/api/v1/courses"


def test_every_controller_is_mounted(app):
    paths = set(app.openapi()["paths"])
    controllers = (
        "auth",
        "courses",
        "sessions",
        "availability",
        "payments",
        "credits",
        "admin",
        "children",
        "videos",
        "coaches",
    )
    for prefix in controllers:
        assert any(path.startswith(f"/api/v1/{prefix}") for path in paths), prefix


def test_injected_database_is_left_open(database):
    app = create_app(database=database)

    with unittest.mock.patch.object(database, "dispose") as dispose, TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert app.state.database is database

    dispose.assert_not_called()


def test_owned_database_is_disposed():
    owned = Database("sqlite://")

    with unittest.mock.patch.object(Database, "from_settings", return_value=owned) as from_settings:
        with unittest.mock.patch.object(owned, "dispose") as dispose:
            with TestClient(create_app()) as client:
                assert client.get("/health").json()["status"] == "healthy"
            from_settings.assert_called_once()
            dispose.assert_called_once()
