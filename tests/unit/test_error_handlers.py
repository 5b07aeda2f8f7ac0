from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
import pytest

from coachhub.core.exceptions import BookingConflictException, NotFoundException, UnauthorizedException
from coachhub.errors import register_error_handlers
from coachhub.schemas.base_responses import ApiResponse, PaginatedData, Pagination


class Item(BaseModel):
    name: str
    quantity: int


@pytest.fixture
def client():
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/ok")
    async def ok():
        return ApiResponse.ok({"value": 1}, "Fine")

    @app.get("/raised")
    async def raised():
        raise NotFoundException("Widget not found", code="WIDGET_NOT_FOUND")

    @app.get("/converted")
    async def converted():
        raise BookingConflictException(details={"conflicts": [{"session_id": "s1"}]}).to_http_exception()

    @app.get("/auth")
    async def auth():
        raise UnauthorizedException("Not authenticated").to_http_exception()

    @app.post("/items")
    async def create_item(item: Item):
        return ApiResponse.ok(item, "Created", 201)

    @app.get("/crash")
    async def crash():
        raise RuntimeError("kaboom")

    return TestClient(app, raise_server_exceptions=False)


def _assert_envelope(body, success, status_code):
    assert set(body) == {"success", "message", "data", "statusCode", "timestamp"}
    assert body["success"] is success
    assert body["statusCode"] == status_code


def test_success_envelope(client):
    body = client.get("/ok").json()

    _assert_envelope(body, True, 200)
    assert body["data"] == {"value": 1}
    assert body["message"] == "Fine"


def test_domain_exception_raised_directly(client):
    response = client.get("/raised")

    assert response.status_code == 404
    body = response.json()
    _assert_envelope(body, False, 404)
    assert body["message"] == "Widget not found"
    assert body["data"] == {"code": "WIDGET_NOT_FOUND", "details": {}}


def test_converted_http_exception_keeps_details(client):
    response = client.get("/converted")

    assert response.status_code == 409
    assert response.json()["data"]["code"] == "BOOKING_CONFLICT"
    assert response.json()["data"]["details"]["conflicts"] == [{"session_id": "s1"}]


def test_unauthorized_keeps_header(client):
    response = client.get("/auth")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_request_validation_is_a_400(client):
    response = client.post("/items", json={"name": "pen"})

    assert response.status_code == 400
    body = response.json()
    _assert_envelope(body, False, 400)
    assert body["message"] == "Validation failed"
    assert body["data"][0]["loc"] == ["body", "quantity"]


def test_unknown_route_is_enveloped(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    _assert_envelope(response.json(), False, 404)


def test_unhandled_error_is_a_500(client):
    response = client.get("/crash")

    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error"


class TestPagination:
    def test_build(self):
        pagination = Pagination.build(page=2, limit=10, total=25)

        assert pagination.pages == 3
        assert pagination.has_next is True
        assert pagination.has_previous is True

    def test_empty(self):
        data = PaginatedData.build([], page=1, limit=10, total=0)

        assert data.pagination.pages == 0
        assert data.pagination.has_next is False
