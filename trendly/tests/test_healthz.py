import trendly.api.health as health_api
from trendly.core.database import drop_all_tables


def test_healthz_always_ok(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_readyz_ok_with_tables(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_readyz_reports_missing_tables(client, engine):
    drop_all_tables(engine)

    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert "usage" in resp.json()["detail"]


def test_readyz_handles_db_down(client, services, monkeypatch):
    class FakeEngine:
        def connect(self):
            raise RuntimeError("db down")

    monkeypatch.setattr(services, "engine", FakeEngine())

    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert resp.json() == {"status": "error", "detail": "database unreachable"}


def test_readyz_uses_inspector(client, monkeypatch):
    class FakeInspector:
        def has_table(self, name):
            return name != "trend_data"

    monkeypatch.setattr(health_api, "inspect", lambda engine: FakeInspector())

    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "missing tables: trend_data"
