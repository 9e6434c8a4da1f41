"""
Unit tests for the job scheduler and its health endpoints.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp.test_utils import make_mocked_request

from jobs import health
from jobs.scheduler import create_scheduler


class TestScheduler:
    """Test scheduler wiring."""

    def test_registers_ledger_jobs(self):
        scheduler = create_scheduler()

        assert sorted(job.id for job in scheduler.get_jobs()) == [
            "ledger_reconciliation",
            "maturation_sweep",
        ]
        assert scheduler.running is False


class TestHealthEndpoints:
    """Test health, readiness and liveness handlers."""

    @pytest.mark.asyncio
    async def test_health_without_scheduler(self, monkeypatch):
        monkeypatch.setattr(health, "_scheduler", None)

        resp = await health.health_handler(make_mocked_request("GET", "/health"))

        assert resp.status == 503

    @pytest.mark.asyncio
    async def test_not_ready_when_database_down(self, monkeypatch):
        scheduler = MagicMock(running=True)
        monkeypatch.setattr(health, "_scheduler", scheduler)
        monkeypatch.setattr(health, "_database_ok", AsyncMock(return_value=False))

        resp = await health.readiness_handler(make_mocked_request("GET", "/readiness"))

        assert resp.status == 503
        body = json.loads(resp.text)
        assert body == {"ready": False, "scheduler": True, "database": False}

    @pytest.mark.asyncio
    async def test_ready(self, monkeypatch):
        monkeypatch.setattr(health, "_scheduler", MagicMock(running=True))
        monkeypatch.setattr(health, "_database_ok", AsyncMock(return_value=True))

        resp = await health.readiness_handler(make_mocked_request("GET", "/readiness"))

        assert resp.status == 200

    @pytest.mark.asyncio
    async def test_liveness(self):
        resp = await health.liveness_handler(make_mocked_request("GET", "/liveness"))

        assert json.loads(resp.text) == {"alive": True}
