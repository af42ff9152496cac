from __future__ import annotations

from fastapi.testclient import TestClient

from talentflow.main import create_app


def test_health(client) -> None:
    resp = client.get("/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_store_health_reports_seeded_counts(client) -> None:
    body = client.get("/health/store").json()
    assert body["durable"] is False
    assert body["db_url"] is None
    assert (body["jobs"], body["candidates"], body["assessments"]) == (25, 1000, 3)


def test_jobs_first_page(client) -> None:
    body = client.get("/api/jobs").json()
    assert body["pagination"] == {"page": 1, "page_size": 10, "total": 25, "total_pages": 3}
    assert len(body["data"]) == 10
    assert [job["order"] for job in body["data"]] == list(range(1, 11))


def test_jobs_query_parameters(client) -> None:
    body = client.get("/api/jobs", params={"page": 3, "pageSize": 10}).json()
    assert len(body["data"]) == 5

    active = client.get("/api/jobs", params={"status": "active", "pageSize": 100}).json()
    assert all(job["status"] == "active" for job in active["data"])
    assert active["pagination"]["total"] == len(active["data"])

    assert client.get("/api/jobs", params={"status": "paused"}).status_code == 422
    assert client.get("/api/jobs", params={"page": 0}).status_code == 422


def test_create_then_search_job(client) -> None:
    resp = client.post("/api/jobs", json={"title": "Quantum Whisperer", "tags": "physics, ml"})
    assert resp.status_code == 201
    created = resp.json()
    assert created["slug"] == "quantum-whisperer"
    assert created["tags"] == ["physics", "ml"]
    assert created["order"] == 26

    found = client.get("/api/jobs", params={"search": "quantum"}).json()
    assert found["pagination"]["total"] == 1
    assert found["data"][0]["id"] == created["id"]


def test_create_job_without_title_is_rejected(client) -> None:
    assert client.post("/api/jobs", json={"title": "   "}).status_code == 422
    assert client.post("/api/jobs", json={}).status_code == 422


def test_patch_and_reorder_jobs(client) -> None:
    patched = client.patch("/api/jobs/job-1", json={"status": "archived"})
    assert patched.status_code == 200
    assert patched.json()["status"] == "archived"
    assert client.get("/api/jobs/job-1").json()["status"] == "archived"

    reordered = client.post("/api/jobs/reorder", json={"orders": {"job-1": 2, "job-2": 1}})
    assert reordered.status_code == 200
    first_two = [job["id"] for job in client.get("/api/jobs").json()["data"][:2]]
    assert first_two == ["job-2", "job-1"]


def test_missing_job_is_404(client) -> None:
    assert client.get("/api/jobs/job-999").status_code == 404
    resp = client.patch("/api/jobs/job-999", json={"title": "Ghost"})
    assert resp.status_code == 404
    assert "job-999" in resp.json()["detail"]


def test_candidates_filters_and_stage_change(client) -> None:
    body = client.get("/api/candidates").json()
    assert body["pagination"]["page_size"] == 50
    assert body["pagination"]["total"] == 1000

    searched = client.get("/api/candidates", params={"search": "candidate42@"}).json()
    assert [c["id"] for c in searched["data"]] == ["candidate-42"]

    moved = client.patch("/api/candidates/candidate-42", json={"stage": "offer"})
    assert moved.status_code == 200
    assert moved.json()["stage"] == "offer"

    offers = client.get("/api/candidates", params={"stage": "offer", "pageSize": 1000}).json()
    assert "candidate-42" in {c["id"] for c in offers["data"]}

    assert client.patch("/api/candidates/candidate-42", json={"stage": "interview"}).status_code == 422
    assert client.get("/api/candidates", params={"stage": "interview"}).status_code == 422


def test_create_candidate_checks_job(client) -> None:
    bad = client.post("/api/candidates", json={"name": "Ada", "email": "ada@example.com", "job_id": "job-999"})
    assert bad.status_code == 422

    ok = client.post("/api/candidates", json={"name": "Ada", "email": "ada@example.com", "job_id": "job-3"})
    assert ok.status_code == 201
    assert ok.json()["stage"] == "applied"


def test_assessment_routes(client) -> None:
    resp = client.get("/api/assessments/job-1")
    assert resp.status_code == 200
    questions = resp.json()["sections"][0]["questions"]
    assert len(questions) == 12

    assert client.get("/api/assessments/job-99").status_code == 404

    put = client.put(
        "/api/assessments/job-99",
        json={"job_id": "job-1", "title": "New", "sections": [{"id": "s-1", "questions": []}]},
    )
    assert put.status_code == 200
    assert put.json()["job_id"] == "job-99"
    assert client.get("/api/assessments/job-99").json()["title"] == "New"
    assert client.get("/api/assessments/job-1").json()["title"] != "New"


def test_validate_assessment_responses(client) -> None:
    empty = client.post("/api/assessments/job-1/validate", json={"responses": {}}).json()
    assert empty["valid"] is False
    assert sorted(empty["errors"]) == [f"q-{i}" for i in range(1, 7)]

    assert client.post("/api/assessments/job-99/validate", json={"responses": {}}).status_code == 404


def test_injected_network_failure_is_503(settings) -> None:
    failing = settings.model_copy(
        update={"transport": "simulated", "failure_rate": 1.0, "latency_min_ms": 0, "latency_max_ms": 0}
    )
    with TestClient(create_app(failing)) as c:
        resp = c.post("/api/jobs", json={"title": "Never stored"})
        assert resp.status_code == 503
        assert c.get("/api/jobs", params={"search": "never"}).json()["pagination"]["total"] == 0
