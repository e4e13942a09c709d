"""Tests for Beautify Web API endpoints."""

import asyncio
import base64
import io
import zipfile

import pytest
from httpx import AsyncClient
from pptx import Presentation

from beautify_web.main import app
from beautify_web.models.generation import FailureKind, GenerationFailure, GenerationSuccess

from ..helpers import make_png

API = "/api/v1"


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def batch_payload(images, **overrides):
    payload = {
        "prompt": "Make it look professional",
        "items": [
            {"filename": f"photo{i}.jpg", "image": b64(image), "mime_type": "image/png"}
            for i, image in enumerate(images, start=1)
        ],
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get(f"{API}/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "beautify-web"
    assert data["gateway_configured"] is True
    assert data["active_jobs"] == 0


@pytest.mark.asyncio
async def test_create_batch_job(client: AsyncClient, processor):
    """Test batch job creation and background processing."""
    response = await client.post(f"{API}/jobs/batch", json=batch_payload([b"one", b"two"]))
    assert response.status_code == 201
    data = response.json()
    assert data["kind"] == "batch"
    assert data["status"] == "pending"
    assert data["total_count"] == 2
    assert data["estimated_cost"] == pytest.approx(0.48)

    await processor.join()

    response = await client.get(f"{API}/jobs/{data['id']}")
    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "completed"
    assert (job["completed_count"], job["failed_count"]) == (2, 0)
    assert job["is_processing"] is False
    assert [t["ordinal"] for t in job["tasks"]] == [1, 2]
    assert [t["label"] for t in job["tasks"]] == ["photo1.jpg", "photo2.jpg"]
    assert all(t["has_result"] for t in job["tasks"])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"items": []},
        {"prompt": ""},
        {"items": [{"filename": "a.png", "image": "not base64!!", "mime_type": "image/png"}]},
        {"items": [{"filename": "a.gif", "image": "R0lGOA==", "mime_type": "image/gif"}]},
    ],
)
async def test_create_batch_job_validation(client: AsyncClient, overrides):
    """Test malformed batch requests are rejected."""
    response = await client.post(f"{API}/jobs/batch", json=batch_payload([b"one"], **overrides))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_deck_job_rejects_duplicate_slides(client: AsyncClient):
    """Test slide numbers must be unique."""
    slide = {"slide_number": 1, "image": b64(make_png())}
    payload = {"filename": "talk.pptx", "prompt": "Clean up", "slides": [slide, slide]}
    response = await client.post(f"{API}/jobs/deck", json=payload)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_job_not_found(client: AsyncClient):
    """Test getting non-existent job."""
    response = await client.get(f"{API}/jobs/999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_jobs(client: AsyncClient, processor):
    """Test listing jobs, most recent first."""
    ids = []
    for i in range(3):
        response = await client.post(f"{API}/jobs/batch", json=batch_payload([f"img{i}".encode()]))
        ids.append(response.json()["id"])
    await processor.join()

    response = await client.get(f"{API}/jobs", params={"limit": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["limit"] == 2
    assert [job["id"] for job in data["jobs"]] == [ids[2], ids[1]]

    response = await client.get(f"{API}/jobs", params={"limit": 2, "offset": 2})
    assert [job["id"] for job in response.json()["jobs"]] == [ids[0]]


@pytest.mark.asyncio
async def test_get_task_detail(client: AsyncClient, processor):
    """Test task detail includes base64 images."""
    response = await client.post(f"{API}/jobs/batch", json=batch_payload([b"source"]))
    job_id = response.json()["id"]
    await processor.join()

    task_id = (await client.get(f"{API}/jobs/{job_id}")).json()["tasks"][0]["id"]
    response = await client.get(f"{API}/jobs/{job_id}/tasks/{task_id}")
    assert response.status_code == 200
    task = response.json()
    assert base64.b64decode(task["input_image"]) == b"source"
    assert base64.b64decode(task["output_image"]) == b"out-source"

    response = await client.get(f"{API}/jobs/{job_id + 1}/tasks/{task_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_retry_failed_task(client: AsyncClient, processor, gateway):
    """Test retrying a failed task over the API."""
    gateway.outcomes[b"bad"] = GenerationFailure(
        message="Content was blocked by safety filters", kind=FailureKind.SAFETY_FILTERED
    )
    response = await client.post(f"{API}/jobs/batch", json=batch_payload([b"good", b"bad"]))
    job_id = response.json()["id"]
    await processor.join()

    tasks = (await client.get(f"{API}/jobs/{job_id}")).json()["tasks"]
    good, bad = tasks
    assert bad["status"] == "failed"

    response = await client.post(f"{API}/jobs/{job_id}/tasks/{good['id']}/retry")
    assert response.status_code == 400

    del gateway.outcomes[b"bad"]
    gateway.gate = asyncio.Event()
    response = await client.post(f"{API}/jobs/{job_id}/tasks/{bad['id']}/retry")
    assert response.status_code == 200
    assert response.json()["status"] == "processing"
    gateway.gate.set()
    await processor.join()

    job = (await client.get(f"{API}/jobs/{job_id}")).json()
    assert job["status"] == "completed"
    assert (job["completed_count"], job["failed_count"]) == (2, 0)


@pytest.mark.asyncio
async def test_cancel_job_not_found(client: AsyncClient):
    """Test cancelling non-existent job."""
    response = await client.post(f"{API}/jobs/999/cancel")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_download_batch_results(client: AsyncClient, processor):
    """Test downloading a batch as a ZIP."""
    response = await client.post(f"{API}/jobs/batch", json=batch_payload([b"one", b"two"]))
    job_id = response.json()["id"]
    await processor.join()

    response = await client.get(f"{API}/jobs/{job_id}/results/download")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert sorted(archive.namelist()) == ["photo1-beautified.png", "photo2-beautified.png"]
        assert archive.read("photo1-beautified.png") == b"out-one"


@pytest.mark.asyncio
async def test_download_batch_without_results(client: AsyncClient, processor, gateway):
    """Test a batch with no successful images has nothing to download."""
    gateway.outcomes[b"bad"] = RuntimeError("boom")
    response = await client.post(f"{API}/jobs/batch", json=batch_payload([b"bad"]))
    job_id = response.json()["id"]
    await processor.join()

    response = await client.get(f"{API}/jobs/{job_id}/results/download")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_deck_job_end_to_end(client: AsyncClient, processor, gateway):
    """Test a deck job is assembled into a downloadable presentation."""
    first, second = make_png(color=(10, 10, 10)), make_png(color=(250, 250, 250))
    gateway.outcomes[first] = GenerationSuccess(image=make_png(color=(0, 128, 0)), mime_type="image/png")
    gateway.outcomes[second] = GenerationFailure(message="No image found in response")
    payload = {
        "filename": "quarterly.pptx",
        "prompt": "Modern corporate look",
        "aspect_ratio": "16:9",
        "slides": [
            {"slide_number": 2, "image": b64(second)},
            {"slide_number": 1, "image": b64(first)},
        ],
    }
    response = await client.post(f"{API}/jobs/deck", json=payload)
    assert response.status_code == 201
    job_id = response.json()["id"]

    await processor.join()

    job = (await client.get(f"{API}/jobs/{job_id}")).json()
    assert job["status"] == "completed"
    assert (job["completed_count"], job["failed_count"]) == (2, 1)
    assert job["details"]["original_filename"] == "quarterly.pptx"

    response = await client.get(f"{API}/jobs/{job_id}/results/download")
    assert response.status_code == 200
    assert "quarterly-beautified.pptx" in response.headers["content-disposition"]
    deck = Presentation(io.BytesIO(response.content))
    assert len(deck.slides) == 2


@pytest.mark.asyncio
async def test_generate_single_image(client: AsyncClient, gateway):
    """Test synchronous single generation."""
    payload = {"image": b64(b"src"), "mime_type": "image/png", "prompt": "Sharpen", "aspect_ratio": "1:1"}
    response = await client.post(f"{API}/generate", json=payload)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert base64.b64decode(data["image"]) == b"out-src"
    assert gateway.aspect_ratios == ["1:1"]


@pytest.mark.asyncio
async def test_generate_failure(client: AsyncClient, gateway):
    """Test a classified generation failure is reported."""
    gateway.outcomes[b"src"] = GenerationFailure(message="Rate limit exceeded", kind=FailureKind.RATE_LIMITED)
    payload = {"image": b64(b"src"), "mime_type": "image/png", "prompt": "Sharpen"}
    response = await client.post(f"{API}/generate", json=payload)
    assert response.status_code == 502
    data = response.json()
    assert data["success"] is False
    assert data["error_kind"] == "rate_limited"


@pytest.mark.asyncio
async def test_generation_not_configured(client: AsyncClient):
    """Test job and generation endpoints are unavailable without a gateway."""
    app.state.gateway = None
    app.state.processor = None

    response = await client.post(f"{API}/jobs/batch", json=batch_payload([b"one"]))
    assert response.status_code == 503
    payload = {"image": b64(b"src"), "mime_type": "image/png", "prompt": "Sharpen"}
    response = await client.post(f"{API}/generate", json=payload)
    assert response.status_code == 503

    response = await client.get(f"{API}/health")
    assert response.json()["gateway_configured"] is False


@pytest.mark.asyncio
async def test_generate_records_history(client: AsyncClient):
    """Test a successful generation is saved and served from history."""
    payload = {"image": b64(b"src"), "mime_type": "image/jpeg", "prompt": "Sharpen", "preset": "studio"}
    response = await client.post(f"{API}/generate", json=payload)
    assert response.status_code == 200
    history_id = response.json()["history_id"]
    assert history_id is not None

    response = await client.get(f"{API}/history")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["has_more"] is False
    assert data["entries"][0]["id"] == history_id
    assert data["entries"][0]["preset"] == "studio"
    assert "original_image" not in data["entries"][0]

    response = await client.get(f"{API}/history/{history_id}")
    assert response.status_code == 200
    entry = response.json()
    assert base64.b64decode(entry["original_image"]) == b"src"
    assert base64.b64decode(entry["generated_image"]) == b"out-src"
    assert entry["original_mime_type"] == "image/jpeg"

    response = await client.get(f"{API}/history/{history_id}/thumbnail")
    assert response.status_code == 200
    assert base64.b64decode(response.json()["generated_image"]) == b"out-src"

    response = await client.delete(f"{API}/history/{history_id}")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    assert (await client.get(f"{API}/history/{history_id}")).status_code == 404
    assert (await client.delete(f"{API}/history/{history_id}")).status_code == 404


@pytest.mark.asyncio
async def test_failed_generation_is_not_recorded(client: AsyncClient, gateway):
    """Test failures leave history untouched."""
    gateway.outcomes[b"src"] = GenerationFailure(message="No image found in response")
    payload = {"image": b64(b"src"), "mime_type": "image/png", "prompt": "Sharpen"}
    response = await client.post(f"{API}/generate", json=payload)
    assert response.status_code == 502
    assert response.json()["history_id"] is None

    response = await client.get(f"{API}/history")
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_history_paging(client: AsyncClient):
    """Test history listing pages with has_more."""
    for i in range(3):
        payload = {"image": b64(f"src{i}".encode()), "mime_type": "image/png", "prompt": f"Prompt {i}"}
        await client.post(f"{API}/generate", json=payload)

    data = (await client.get(f"{API}/history", params={"limit": 2})).json()
    assert len(data["entries"]) == 2
    assert data["total"] == 3
    assert data["has_more"] is True
    assert [e["prompt"] for e in data["entries"]] == ["Prompt 2", "Prompt 1"]
