from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from jam3a.api.error_handlers import register_error_handlers
from jam3a.domain.errors import DealFullError


class Payload(BaseModel):
    quantity: int


def build_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/full")
    def full() -> None:
        raise DealFullError(details={"deal_id": "abc"})

    @app.post("/payload")
    def payload(body: Payload) -> dict[str, int]:
        return {"quantity": body.quantity}

    @app.get("/crash")
    def crash() -> None:
        raise RuntimeError("boom")

    return app


def test_domain_error_handler_returns_error_envelope() -> None:
    client = TestClient(build_app())
    response = client.get("/full")

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "code": "DEAL_FULL",
        "message": "Deal is full.",
        "details": {"deal_id": "abc"},
    }


def test_request_validation_maps_to_400_validation_error() -> None:
    client = TestClient(build_app())
    response = client.post("/payload", json={"quantity": "many"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["errors"]


def test_unexpected_error_maps_to_server_error() -> None:
    client = TestClient(build_app(), raise_server_exceptions=False)
    response = client.get("/crash")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "code": "SERVER_ERROR",
        "message": "An unexpected internal error occurred.",
        "details": {"error_type": "RuntimeError"},
    }


def test_unknown_route_uses_error_envelope() -> None:
    client = TestClient(build_app())
    response = client.get("/missing")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "code": "NOT_FOUND",
        "message": "Not Found",
    }


def test_wrong_method_keeps_allow_header() -> None:
    client = TestClient(build_app())
    response = client.delete("/full")

    assert response.status_code == 405
    assert response.json()["code"] == "METHOD_NOT_ALLOWED"
    assert response.headers["allow"] == "GET"
