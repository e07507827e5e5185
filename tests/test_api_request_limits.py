from __future__ import annotations

from fastapi.testclient import TestClient

from usm.api.app import create_app


def test_request_size_limit_returns_413(monkeypatch):
    # Make limit very small for test determinism.
    monkeypatch.setenv("USM_MAX_REQUEST_BYTES", "128")

    app = create_app(boot_runtime=False)
    c = TestClient(app)

    payload = {"caller": "alice", "to": "bob", "amount": 1, "pad": "x" * 500}

    r = c.post("/v1/token/transfer", json=payload)
    assert r.status_code == 413

    j = r.json()
    assert j.get("ok") is False
    assert j["error"].get("code") == "request_too_large"


def test_size_limit_can_be_disabled(monkeypatch):
    monkeypatch.setenv("USM_MAX_REQUEST_BYTES", "128")
    monkeypatch.setenv("USM_SIZE_LIMIT_DISABLE", "1")

    app = create_app(boot_runtime=False)
    c = TestClient(app)

    r = c.post("/v1/token/transfer", json={"caller": "alice", "to": "bob", "amount": 1, "pad": "x" * 500})
    # Passes the limiter and fails only because no executor is attached.
    assert r.status_code == 500
    assert r.json()["error"]["code"] == "not_ready"
