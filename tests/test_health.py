from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from app.api.routes import health as health_module
from app.main import app


client = TestClient(app)


def test_liveness():
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_ready_when_store_answers(monkeypatch: pytest.MonkeyPatch):
    store = Mock()
    store.ping = AsyncMock(return_value=True)
    monkeypatch.setattr(health_module, "get_counter_store", lambda: store)

    resp = client.get("/health/ready")

    assert resp.status_code == 200
    assert resp.json()["checks"]["counter_store"]["reachable"] is True


def test_not_ready_when_store_fails(monkeypatch: pytest.MonkeyPatch):
    store = Mock()
    store.ping = AsyncMock(side_effect=ConnectionError("Connection refused"))
    monkeypatch.setattr(health_module, "get_counter_store", lambda: store)

    resp = client.get("/health/ready")

    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] == "unavailable"
    assert body["checks"]["counter_store"]["reachable"] is False
