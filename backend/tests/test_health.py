from roomguard.db import bootstrap


def test_health_endpoint(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_reports_database_and_smtp(client):
    ready = client.get("/api/health/ready")
    assert ready.status_code == 200
    payload = ready.json()
    assert payload["status"] == "ok"
    assert payload["database"] == {"ok": True, "missing": [], "error": None}
    assert payload["smtp"] == {"configured": False}
    assert payload["sweeps"]["enabled"] is False


def test_readiness_degrades_when_schema_is_incomplete(client, monkeypatch):
    monkeypatch.setattr(
        "roomguard.api.routes.health.missing_schema_items",
        lambda engine: ["reservations.notes"],
    )
    response = client.get("/api/health/ready")
    assert response.status_code == 503
    assert response.json()["database"]["missing"] == ["reservations.notes"]


def test_security_headers_are_set(client):
    response = client.get("/api/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"


def test_oversized_requests_are_refused(client, headers_for, seed):
    user = seed.user()
    response = client.post(
        "/api/reservations/",
        content=b"x" * 1_000_001,
        headers={**headers_for(user), "Content-Type": "application/json"},
    )
    assert response.status_code == 413
    assert response.json()["details"] == {"max_bytes": 1_000_000}


def test_bootstrap_flags_missing_tables(engine):
    from roomguard.models import Notification

    Notification.__table__.drop(engine)
    assert bootstrap.missing_schema_items(engine) == ["notifications"]
