import time

import pytest
from fastapi.testclient import TestClient

from conftest import TOKEN, make_pdf
from kbvault.main import app
from kbvault.routers import dependencies
from kbvault.services.hybrid_ai_service import HybridAIService
from kbvault.services.providers import MockProvider, ProviderRegistration


@pytest.fixture
def client(build_pipeline, storage):
    with TestClient(app) as test_client:
        dependencies.pdf_pipeline = build_pipeline()
        dependencies.storage_service = storage
        dependencies.hybrid_ai_service = HybridAIService([ProviderRegistration(MockProvider(), priority=99)])
        yield test_client


def _wait_for_terminal(client, job_id, timeout=10.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        job = client.get(f"/pdf/jobs/{job_id}").json()
        if job["status"] in ("completed", "failed"):
            return job
        time.sleep(0.05)
    raise AssertionError(f"job {job_id} did not finish")


def _upload(client, token=TOKEN, **data):
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return client.post(
        "/pdf/process",
        files={"file": ("report.pdf", make_pdf(pages=2), "application/pdf")},
        data=data,
        headers=headers,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_responses_carry_request_id(client):
    response = client.get("/pdf/jobs", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/pdf/jobs").headers["X-Request-ID"]


def test_process_pdf_accepts_and_completes(client):
    response = _upload(client, max_pages="5")
    assert response.status_code == 202
    job_id = response.json()["job_id"]

    job = _wait_for_terminal(client, job_id)

    assert job["status"] == "completed"
    assert job["filename"] == "report.pdf"
    assert job["processing_job_id"]
    assert [step["status"] for step in job["steps"]] == ["completed"] * len(job["steps"])
    assert client.get("/pdf/jobs").json()[0]["id"] == job_id


def test_process_pdf_without_token_fails_auth_step(client):
    job_id = _upload(client, token=None).json()["job_id"]

    job = _wait_for_terminal(client, job_id)

    assert job["status"] == "failed"
    auth_step = next(step for step in job["steps"] if step["id"] == "auth")
    assert auth_step["status"] == "failed"
    assert auth_step["error"] == "User not authenticated"


def test_unknown_job_returns_404(client):
    assert client.get("/pdf/jobs/missing").status_code == 404
    assert client.post("/pdf/jobs/missing/retry").status_code == 404
    assert client.get("/pdf/jobs/missing/events").status_code == 404


def test_retry_finished_job(client):
    job_id = _upload(client, token=None).json()["job_id"]
    _wait_for_terminal(client, job_id)

    response = client.post(f"/pdf/jobs/{job_id}/retry")

    assert response.status_code == 202
    assert response.json() == {"job_id": job_id}
    assert _wait_for_terminal(client, job_id)["status"] == "failed"


def test_event_stream_of_finished_job(client):
    job_id = _upload(client).json()["job_id"]
    _wait_for_terminal(client, job_id)

    response = client.get(f"/pdf/jobs/{job_id}/events")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.text.startswith("event: job\ndata: ")
    assert '"status": "completed"' in response.text


def test_hybrid_request(client):
    response = client.post("/ai/hybrid", json={"prompt": "Describe oak", "type": "material-analysis"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["provider"] == "mock"
    assert body["attempts"][0]["provider"] == "mock"
    assert body["data"]["parsed"]["category"] == "other"


def test_hybrid_request_rejects_empty_prompt(client):
    assert client.post("/ai/hybrid", json={"prompt": ""}).status_code == 422


def test_provider_availability(client):
    assert client.get("/ai/providers").json() == {"mock": True}


def test_files_route_serves_local_objects(client, storage):
    job_id = _upload(client).json()["job_id"]
    job = _wait_for_terminal(client, job_id)
    html_url = next(step for step in job["steps"] if step["id"] == "html-finalization")["metadata"]["html_url"]

    response = client.get(html_url.replace("http://testserver", ""))

    assert response.status_code == 200
    assert "Quarterly Material Report" in response.text


def test_files_route_missing_object(client):
    assert client.get("/files/pdf-documents/nope.html").status_code == 404
