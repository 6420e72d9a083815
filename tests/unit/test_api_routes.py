"""HTTP surface tests using an in-process ASGI transport."""

from __future__ import annotations

import httpx
import pytest

from meshforge.jobs.models import ClientStatus, JobType
from meshforge.main import create_app
from meshforge.services.artifacts import InMemoryKeyValueStore
from meshforge.services.history import InMemoryHistoryStore, new_history_entry
from meshforge.services.queue.local import LocalJobQueue


@pytest.fixture
def queue() -> LocalJobQueue:
  return LocalJobQueue()


@pytest.fixture
def history() -> InMemoryHistoryStore:
  return InMemoryHistoryStore()


@pytest.fixture
def asset_store() -> InMemoryKeyValueStore:
  return InMemoryKeyValueStore()


@pytest.fixture
def app(settings, queue, history, asset_store, uploader):
  return create_app(settings, queue=queue, asset_store=asset_store, history=history, uploader=uploader, providers=[], run_embedded_worker=False)


@pytest.fixture
async def client(app):
  transport = httpx.ASGITransport(app=app)
  async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
    yield http_client


@pytest.mark.anyio
async def test_health(client) -> None:
  response = await client.get("/health")
  assert response.status_code == 200
  assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_create_job_returns_201_and_enqueues(client, queue, history) -> None:
  response = await client.post("/v1/jobs", json={"type": "text", "prompt": "a red fox"})

  assert response.status_code == 201
  body = response.json()
  assert body["status"] == "queued"
  queued = await queue.get_job(body["jobId"])
  assert queued.payload["prompt"] == "a red fox"
  assert queued.payload["format"] == "glb"
  [entry] = await history.list_entries()
  assert entry.job_id == body["jobId"]


@pytest.mark.anyio
async def test_create_job_reports_all_violations(client) -> None:
  response = await client.post("/v1/jobs", json={"type": "image", "prompt": "", "format": "obj"})

  assert response.status_code == 400
  body = response.json()
  assert body["error"] == "Validation error"
  fields = {detail["field"] for detail in body["details"]}
  assert {"prompt", "format"} <= fields


@pytest.mark.anyio
async def test_create_job_rejects_non_object_body(client) -> None:
  response = await client.post("/v1/jobs", json=["not", "an", "object"])
  assert response.status_code == 400
  assert response.json()["details"][0]["field"] == "body"


@pytest.mark.anyio
async def test_job_status_lifecycle(client, queue) -> None:
  job_id = (await client.post("/v1/jobs", json={"type": "text", "prompt": "a chair"})).json()["jobId"]

  assert (await client.get(f"/v1/jobs/{job_id}")).json() == {"jobId": job_id, "status": "queued", "assetId": None, "error": None}

  await queue.reserve()
  assert (await client.get(f"/v1/jobs/{job_id}")).json()["status"] == "running"

  await queue.complete(job_id, {"assetId": f"asset-{job_id}.glb", "assetUrl": f"/storage/asset-{job_id}.glb"})
  assert (await client.get(f"/v1/jobs/{job_id}")).json() == {"jobId": job_id, "status": "succeeded", "assetId": f"asset-{job_id}.glb", "error": None}


@pytest.mark.anyio
async def test_unknown_job_is_404(client) -> None:
  response = await client.get("/v1/jobs/does-not-exist")
  assert response.status_code == 404
  assert response.json() == {"error": "Job not found"}


@pytest.mark.anyio
async def test_history_listing_paginates_and_filters(client, history) -> None:
  for index in range(3):
    await history.save(new_history_entry(f"job-{index}", JobType.TEXT, f"prompt {index}", created_at=1700000000000 + index))
  await history.save(new_history_entry("job-img", JobType.IMAGE, "an image job", created_at=1700000000100))
  await history.update_status("job-0", ClientStatus.SUCCEEDED, "asset-job-0.glb")

  page = (await client.get("/v1/jobs", params={"page": 1, "limit": 2})).json()
  assert [item["jobId"] for item in page["data"]] == ["job-img", "job-2"]
  assert page["pagination"] == {"page": 1, "limit": 2, "total": 4, "totalPages": 2}

  text_only = (await client.get("/v1/jobs", params={"type": "text", "status": "succeeded"})).json()
  assert text_only["data"] == [{"jobId": "job-0", "type": "text", "prompt": "prompt 0", "status": "succeeded", "createdAt": 1700000000000, "assetId": "asset-job-0.glb"}]


@pytest.mark.anyio
async def test_history_rejects_out_of_range_limit(client) -> None:
  response = await client.get("/v1/jobs", params={"limit": 500})
  assert response.status_code == 400
  assert response.json()["error"] == "Validation error"


@pytest.mark.anyio
async def test_asset_lookup(client, asset_store) -> None:
  await asset_store.set("asset:asset-job-1.fbx", "/storage/asset-job-1.fbx")

  response = await client.get("/v1/assets/asset-job-1.fbx")
  assert response.status_code == 200
  assert response.json() == {"downloadUrl": "/storage/asset-job-1.fbx", "format": "fbx"}

  missing = await client.get("/v1/assets/asset-missing.glb")
  assert missing.status_code == 404
  assert missing.json() == {"error": "Asset not found"}


@pytest.mark.anyio
async def test_asset_preview_redirects(client, asset_store) -> None:
  await asset_store.set("asset:asset-job-1.glb", "/storage/asset-job-1.glb")

  response = await client.get("/v1/assets/asset-job-1.glb/preview")
  assert response.status_code == 302
  assert response.headers["location"] == "/storage/asset-job-1.glb"


@pytest.mark.anyio
async def test_asset_textures(client, asset_store) -> None:
  await asset_store.set("textures:asset-job-1.glb", '{"albedo": "https://t/a.png"}')

  assert (await client.get("/v1/assets/asset-job-1.glb/textures")).json() == {"albedo": "https://t/a.png"}
  missing = await client.get("/v1/assets/asset-other.glb/textures")
  assert missing.status_code == 404
  assert missing.json() == {"error": "Textures not found"}


@pytest.mark.anyio
async def test_local_artifacts_are_served_from_storage(client, uploader) -> None:
  await uploader.upload(b"glb-bytes", "asset-job-9.glb", "model/gltf-binary")

  response = await client.get("/storage/asset-job-9.glb")
  assert response.status_code == 200
  assert response.content == b"glb-bytes"
