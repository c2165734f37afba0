"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AppError,
    NotFoundAppError,
    StoreAppError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


def _decode(response) -> dict:
    body = response.body if isinstance(response.body, bytes) else bytes(response.body)
    return json.loads(body.decode())


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/invalid")
        async def endpoint():
            raise ValidationAppError(code="store_unknown_backend", message="Unknown store")

        response = client.get("/invalid")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "store_unknown_backend"
        assert error["message"] == "Unknown store"
        assert "request_id" in error
        assert "details" not in error

    def test_details_are_included_when_present(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/invalid-details")
        async def endpoint():
            raise ValidationAppError(
                code="habit_invalid_frequency",
                message="Frequency must be daily or weekly",
                details={"field": "frequency"},
            )

        response = client.get("/invalid-details")

        assert response.json()["error"]["details"] == {"field": "frequency"}

    def test_not_found_error_returns_404(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/habits/{habit_id}")
        async def endpoint(habit_id: str):
            raise NotFoundAppError(code="habit_not_found", message=f"Habit {habit_id} not found")

        response = client.get("/habits/abc")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "habit_not_found"

    def test_store_error_returns_503(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/store")
        async def endpoint():
            raise StoreAppError(code="store_unavailable", message="Redis get failed")

        response = client.get("/store")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "store_unavailable"


class TestHttpExceptionHandler:
    def test_unknown_route_uses_not_found_message(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "not_found"
        assert error["message"] == "Not found - /nope"

    def test_method_not_allowed_keeps_status(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/only-get")
        async def endpoint():
            return {}

        response = client.post("/only-get")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "http_405"


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_hides_internals(self):
        request = AsyncMock()
        request.url.path = "/api/habits"
        request.method = "GET"

        exc = RuntimeError("database connection failed at 10.0.0.5")
        response = asyncio.run(general_exception_handler(request, exc))

        data = _decode(response)
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "database connection" not in data["error"]["message"]
        assert "RuntimeError" not in json.dumps(data)
        assert "request_id" in data["error"]

    def test_general_exception_handler_uses_request_state_id(self):
        request = MagicMock()
        request.url.path = "/api/habits"
        request.method = "GET"
        request.state.request_id = "req-from-state"

        response = asyncio.run(general_exception_handler(request, RuntimeError("boom")))

        assert _decode(response)["error"]["request_id"] == "req-from-state"


def test_setup_exception_handlers_is_idempotent():
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
