from tazk.worker import WorkerSettings, create_recurring_tasks_task


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").status_code == 200


def test_security_headers(client):
    response = client.get("/")
    assert response.headers["x-frame-options"] == "DENY"
    assert response.headers["x-content-type-options"] == "nosniff"
    assert "default-src 'none'" in response.headers["content-security-policy"]
    assert response.headers["cache-control"].startswith("no-store")

    assert "x-frame-options" not in client.get("/health").headers


def test_service_worker_keeps_its_cache_policy(client):
    assert client.get("/sw-push.js").headers["cache-control"] == "no-cache"


def test_cors_preflight(client):
    response = client.options(
        "/tasks",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_worker_runs_recurring_generator_on_cron():
    assert create_recurring_tasks_task in WorkerSettings.functions
    assert len(WorkerSettings.cron_jobs) == 1


async def test_worker_task_returns_summary():
    summary = await create_recurring_tasks_task({})
    assert summary == {"message": "No recurring tasks due", "tasks_created": 0, "routines_processed": 0}
