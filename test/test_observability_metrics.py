import importlib

from fastapi.testclient import TestClient


def _import_app():
    mod = importlib.import_module("api.main")
    return mod


def test_root_message():
    client = TestClient(_import_app().app)
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "Smart Task Backend is running"


def test_health_degraded_without_database():
    client = TestClient(_import_app().app)
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "degraded"
    assert body["database"]["status"] == "unavailable"


def test_metrics_endpoint_exposes_prometheus_text():
    client = TestClient(_import_app().app)

    r = client.get("/metrics")
    assert r.status_code == 200
    assert "text/plain" in r.headers.get("content-type", "")
    body = r.text
    assert "smart_tasks_requests_total" in body
    assert "smart_tasks_request_latency_seconds" in body


def test_classify_increments_counters(client):
    r = client.post("/api/tasks/classify", json={"title": "Fire drill", "description": "safety hazard"})
    assert r.status_code == 200

    body = client.get("/metrics").text
    lines = body.splitlines()
    assert any(
        line.startswith('smart_tasks_classified_total{category="safety",priority="low"}')
        for line in lines
    )
    assert any(
        line.startswith('smart_tasks_requests_total{endpoint="/api/tasks/classify",status="ok"}')
        for line in lines
    )


def _sample(body: str, prefix: str) -> float:
    for line in body.splitlines():
        if line.startswith(prefix):
            return float(line.rsplit(" ", 1)[1])
    return 0.0


def test_crud_requests_are_counted(client):
    list_ok = 'smart_tasks_requests_total{endpoint="/api/tasks",status="ok"}'
    task_prefix = 'smart_tasks_requests_total{endpoint="/api/tasks/{task_id}",status="%s"}'
    before = client.get("/metrics").text

    task_id = client.post(
        "/api/tasks", json={"title": "Fix server", "description": "Reboot it"}
    ).json()["task"]["id"]
    client.get("/api/tasks")
    client.get(f"/api/tasks/{task_id}")
    client.get("/api/tasks/not-a-uuid")
    client.patch(f"/api/tasks/{task_id}", json={"status": "completed"})
    client.delete(f"/api/tasks/{task_id}")

    after = client.get("/metrics").text
    assert _sample(after, list_ok) == _sample(before, list_ok) + 1
    for status in ("ok", "not_found", "updated", "deleted"):
        prefix = task_prefix % status
        assert _sample(after, prefix) == _sample(before, prefix) + 1
    assert 'smart_tasks_request_latency_seconds_count{endpoint="/api/tasks/{task_id}"}' in after


def test_db_health_check_reports_connection_only(monkeypatch):
    import asyncio
    from storage import db

    async def fetchval(query, *args):
        return 1

    monkeypatch.setattr(db, "fetchval", fetchval)
    assert asyncio.run(db.health_check()) == {"status": "healthy", "database": "connected"}
