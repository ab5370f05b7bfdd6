"""Tests for global exception handlers.

Validates that domain errors map to the right status codes with a
consistent body, and that unexpected errors never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dreamgate.core.errors import AppError, LLMAppError, RateLimitedAppError, ValidationAppError
from dreamgate.core.exception_handlers import general_exception_handler, setup_exception_handlers, status_for_error


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/validation")
    async def validation():
        raise ValidationAppError(
            code="dream_text_too_short",
            message="Dream text must be at least 10 characters",
            details={"min_chars": 10, "actual_chars": 4},
        )

    @app.get("/llm")
    async def llm():
        raise LLMAppError(code="llm_provider_error", message="Upstream failed")

    @app.get("/rate-limited")
    async def rate_limited():
        raise RateLimitedAppError(
            code="rate_limited",
            message="Too many requests. Please try again later.",
            details={"retry_after_seconds": 7},
            headers={"Retry-After": "7"},
        )

    @app.get("/plain")
    async def plain():
        raise AppError(code="generic", message="Generic failure")

    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (ValidationAppError(code="v", message="v"), 400),
        (LLMAppError(code="l", message="l"), 502),
        (RateLimitedAppError(code="r", message="r"), 429),
        (AppError(code="a", message="a"), 400),
    ],
)
def test_status_for_error(error: AppError, expected: int) -> None:
    assert status_for_error(error) == expected


def test_validation_error_returns_400_with_details(client: TestClient) -> None:
    response = client.get("/validation")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "dream_text_too_short"
    assert error["details"] == {"min_chars": 10, "actual_chars": 4}
    assert "request_id" in error


def test_llm_error_returns_502(client: TestClient) -> None:
    response = client.get("/llm")

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "llm_provider_error"
    assert "details" not in response.json()["error"]


def test_rate_limited_error_returns_429_with_headers(client: TestClient) -> None:
    response = client.get("/rate-limited")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "7"
    assert response.json()["error"]["details"]["retry_after_seconds"] == 7


def test_generic_app_error_defaults_to_400(client: TestClient) -> None:
    assert client.get("/plain").status_code == 400


def test_str_of_app_error_is_message() -> None:
    assert str(LLMAppError(code="x", message="Upstream failed")) == "Upstream failed"


def test_general_exception_handler_never_leaks_internals() -> None:
    request = AsyncMock()
    request.url.path = "/test"
    request.method = "GET"

    exc = RuntimeError("database password is hunter2")
    response = asyncio.run(general_exception_handler(request, exc))

    data = json.loads(bytes(response.body).decode())
    assert response.status_code == 500
    assert data["error"]["code"] == "internal_server_error"
    assert "hunter2" not in data["error"]["message"]
    assert "RuntimeError" not in bytes(response.body).decode()


def test_handlers_registered(app_with_handlers: FastAPI) -> None:
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
