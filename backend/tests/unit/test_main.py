"""
Unit tests for main FastAPI application.

Tests the root endpoints, application setup, and the exception handlers that
map scheduling failures to HTTP responses.
"""

import json

import pytest
from unittest.mock import Mock, patch
from fastapi import Request
from fastapi.testclient import TestClient

from main import (
    app,
    root,
    health_check,
    global_exception_handler,
    scheduling_error_handler,
    value_error_handler,
    lifespan,
)
from services.scheduling_errors import (
    AppointmentConflict, NotFound, TransientStoreError, conflict_range,
)


class TestRootEndpoints:
    """Test root API endpoints."""

    def test_root_endpoint(self):
        client = TestClient(app)
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Medical Scheduling Backend API"
        assert data["version"] == "1.0.0"
        assert data["status"] == "running"

    @pytest.mark.asyncio
    async def test_health_check_function_directly(self):
        result = await health_check()
        assert result == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_root_function_directly(self):
        result = await root()
        assert result["status"] == "running"


class TestExceptionHandlers:
    """Test global exception handlers."""

    @pytest.mark.asyncio
    async def test_appointment_conflict(self):
        from datetime import datetime

        conflict = conflict_range(datetime(2030, 1, 7, 10, 0), datetime(2030, 1, 7, 10, 30), appointment_id=3)
        response = await scheduling_error_handler(Mock(spec=Request), AppointmentConflict("Taken", conflict))

        assert response.status_code == 409
        assert json.loads(response.body) == {
            "detail": "Taken",
            "type": "appointment_conflict",
            "conflict": {"start": "2030-01-07T10:00:00", "end": "2030-01-07T10:30:00", "appointment_id": 3},
            "retryable": False,
        }
        assert "retry-after" not in response.headers

    @pytest.mark.asyncio
    async def test_not_found(self):
        response = await scheduling_error_handler(Mock(spec=Request), NotFound("Doctor 9 not found"))

        assert response.status_code == 404
        assert json.loads(response.body)["conflict"] is None

    @pytest.mark.asyncio
    async def test_transient_error_asks_for_retry(self):
        response = await scheduling_error_handler(Mock(spec=Request), TransientStoreError("busy"))

        assert response.status_code == 503
        assert json.loads(response.body)["retryable"] is True
        assert "retry-after" in response.headers

    @pytest.mark.asyncio
    async def test_global_exception_handler(self):
        with patch('main.logger') as mock_logger:
            response = await global_exception_handler(Mock(spec=Request), RuntimeError("Test error"))

            assert response.status_code == 500
            assert b"internal_error" in response.body

            mock_logger.exception.assert_called_once()
            assert "Unhandled exception: Test error" in mock_logger.exception.call_args[0][0]

    @pytest.mark.asyncio
    async def test_value_error_handler(self):
        with patch('main.logger') as mock_logger:
            response = await value_error_handler(Mock(spec=Request), ValueError("Invalid value"))

            assert response.status_code == 400
            assert b"Invalid value" in response.body
            assert b"validation_error" in response.body
            mock_logger.warning.assert_called_once_with("ValueError: Invalid value")


class TestApplicationSetup:
    """Test FastAPI application setup and configuration."""

    def test_app_creation(self):
        assert app.title == "Medical Scheduling Backend"
        assert app.version == "1.0.0"
        assert app.docs_url == "/docs"

    def test_router_inclusion(self):
        paths = app.openapi()["paths"]

        assert "/api/doctors/{doctor_id}/availability" in paths
        assert "/api/appointments" in paths
        assert "/api/practices/{practice_id}/doctors/{doctor_id}/schedule" in paths

    def test_cors_headers_on_preflight_request(self):
        client = TestClient(app)

        response = client.options("/health", headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        })

        assert "access-control-allow-methods" in response.headers
        assert "access-control-allow-credentials" in response.headers


class TestLifespan:
    """Test application lifespan management."""

    @pytest.mark.asyncio
    async def test_lifespan_context_manager(self):
        with patch('main.logger') as mock_logger:
            async with lifespan(app):
                pass

            messages = [call.args[0] for call in mock_logger.info.call_args_list]
            assert "Starting Medical Scheduling Backend API" in messages
            assert "Shutting down Medical Scheduling Backend API" in messages
