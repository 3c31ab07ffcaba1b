"""Tests for mapping workflow errors onto HTTP responses."""

from uuid import uuid4

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient

from src.simflow.core.exceptions import setup_exception_handlers, status_for
from src.simflow.workflow import (
    Conflict,
    Forbidden,
    InsufficientBudget,
    InvalidTransition,
    NotFound,
    ProjectInUse,
    ProjectUnavailable,
    ReasonRequired,
    ValidationFailed,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (InvalidTransition("Archived", "Active"), 409),
        (Forbidden("Engineer", "assign"), 403),
        (InsufficientBudget(available=5, requested=8), 409),
        (ReasonRequired("On Hold"), 422),
        (Conflict(1, 2), 409),
        (NotFound("request", uuid4()), 404),
        (ProjectUnavailable("On Hold"), 409),
        (ProjectInUse(3), 409),
        (ValidationFailed("Engineer must be active"), 422),
    ],
)
def test_status_for(error, status_code):
    assert status_for(error) == status_code


def test_messages_are_readable():
    assert str(InsufficientBudget(available=20, requested=30)) == (
        "Insufficient hours: 20 available, 30 requested"
    )
    assert NotFound("title_change", uuid4()).message == "Title change not found"
    assert "Allowed: Archived" in InvalidTransition("Completed", "Active", ["Archived"]).message


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/budget")
    async def budget():
        raise InsufficientBudget(available=20, requested=30)

    @app.get("/forbidden")
    async def forbidden():
        raise HTTPException(status_code=403, detail="Admin access required")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    return app


@pytest.fixture
async def client(app: FastAPI):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestHandlers:
    async def test_workflow_error_body(self, client):
        response = await client.get("/budget")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "InsufficientBudget"
        assert body["available"] == 20
        assert body["requested"] == 30
        assert "request_id" in body

    async def test_http_exception_body(self, client):
        response = await client.get("/forbidden")

        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"
        assert response.json()["error"] == "HTTPException"

    async def test_unhandled_exception_is_500(self, client):
        response = await client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"] == "InternalServerError"
