"""Tests for the background job worker."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from meshforge.errors import ProviderError
from meshforge.jobs.models import ClientStatus, JobType, QueueState
from meshforge.jobs.orchestrator import Generate3DDeps
from meshforge.jobs.worker import JobWorker, build_job_worker
from meshforge.services.artifacts import ArtifactRegistry, InMemoryKeyValueStore
from meshforge.services.history import InMemoryHistoryStore, new_history_entry
from meshforge.services.queue.interface import EnqueueOptions
from meshforge.services.queue.local import LocalJobQueue


async def _enqueue(queue, history, make_job, job_id: str = "job-1", **overrides) -> None:
  job = make_job(job_id=job_id, **overrides)
  await queue.add(job_id, job.to_payload(), EnqueueOptions(attempts=2, backoff_seconds=0.0))
  await history.save(new_history_entry(job_id, job.type, job.prompt, created_at=job.created_at))


def _worker(queue, uploader, history, registry, **deps_overrides) -> JobWorker:
  deps = Generate3DDeps(providers=[], uploader=uploader, delay=AsyncMock(), random=lambda: 0.0, **deps_overrides)
  return JobWorker(queue=queue, deps=deps, registry=registry, history=history)


@pytest.mark.anyio
async def test_process_success_completes_and_registers(make_job, uploader, no_sleep) -> None:
  queue, history, registry = LocalJobQueue(sleep=no_sleep), InMemoryHistoryStore(), ArtifactRegistry(InMemoryKeyValueStore())
  await _enqueue(queue, history, make_job)
  worker = _worker(queue, uploader, history, registry)

  await worker.process(await queue.reserve())

  job = await queue.get_job("job-1")
  assert job.state == QueueState.COMPLETED
  assert job.return_value == {"assetId": "asset-job-1.glb", "assetUrl": "/storage/asset-job-1.glb", "format": "glb"}
  assert await registry.get_asset_url("asset-job-1.glb") == "/storage/asset-job-1.glb"
  [entry] = await history.list_entries()
  assert entry.status == ClientStatus.SUCCEEDED
  assert entry.asset_id == "asset-job-1.glb"


@pytest.mark.anyio
async def test_failure_is_redelivered_then_marked_failed(make_job, uploader, no_sleep) -> None:
  queue, history, registry = LocalJobQueue(sleep=no_sleep), InMemoryHistoryStore(), ArtifactRegistry(InMemoryKeyValueStore())
  await _enqueue(queue, history, make_job)
  placeholder = AsyncMock(side_effect=ProviderError("storage unavailable"))
  worker = _worker(queue, uploader, history, registry, generate_placeholder=placeholder)

  await worker.process(await queue.reserve())
  assert (await queue.get_job("job-1")).state == QueueState.DELAYED
  assert (await history.list_entries())[0].status == ClientStatus.QUEUED

  await worker.process(await queue.reserve())
  job = await queue.get_job("job-1")
  assert job.state == QueueState.FAILED
  assert job.failed_reason == "storage unavailable"
  assert (await history.list_entries())[0].status == ClientStatus.FAILED
  assert placeholder.await_count == 2


@pytest.mark.anyio
async def test_malformed_payload_fails_the_attempt(uploader, no_sleep) -> None:
  queue, registry = LocalJobQueue(sleep=no_sleep), ArtifactRegistry(InMemoryKeyValueStore())
  await queue.add("job-x", {"id": "job-x", "type": "hologram"}, EnqueueOptions(attempts=1))
  worker = _worker(queue, uploader, None, registry)

  await worker.process(await queue.reserve())

  job = await queue.get_job("job-x")
  assert job.state == QueueState.FAILED
  assert "hologram" in job.failed_reason


@pytest.mark.anyio
async def test_history_errors_do_not_fail_the_job(make_job, uploader, no_sleep) -> None:
  queue, registry = LocalJobQueue(sleep=no_sleep), ArtifactRegistry(InMemoryKeyValueStore())
  history = AsyncMock()
  history.update_status.side_effect = ConnectionError("history down")
  await queue.add("job-1", make_job().to_payload(), EnqueueOptions())
  worker = _worker(queue, uploader, history, registry)

  await worker.process(await queue.reserve())

  assert (await queue.get_job("job-1")).state == QueueState.COMPLETED


@pytest.mark.anyio
async def test_start_processes_jobs_until_stopped(make_job, uploader, no_sleep) -> None:
  queue, history, registry = LocalJobQueue(sleep=no_sleep), InMemoryHistoryStore(), ArtifactRegistry(InMemoryKeyValueStore())
  await _enqueue(queue, history, make_job, "job-1")
  await _enqueue(queue, history, make_job, "job-2", type=JobType.IMAGE)
  worker = _worker(queue, uploader, history, registry)

  worker.start()
  assert worker.running
  for _ in range(200):
    states = [(await queue.get_job(job_id)).state for job_id in ("job-1", "job-2")]
    if all(state == QueueState.COMPLETED for state in states):
      break
    await asyncio.sleep(0.01)
  await worker.stop()

  assert states == [QueueState.COMPLETED, QueueState.COMPLETED]
  assert not worker.running
  assert await registry.get_asset_url("asset-job-2.glb") == "/storage/asset-job-2.glb"


@pytest.mark.anyio
async def test_stop_without_jobs_returns_promptly(uploader) -> None:
  worker = _worker(LocalJobQueue(), uploader, None, ArtifactRegistry(InMemoryKeyValueStore()))
  worker.start()
  await asyncio.wait_for(worker.stop(), timeout=1.0)
  assert not worker.running


def test_concurrency_must_be_positive(uploader) -> None:
  deps = Generate3DDeps(providers=[], uploader=uploader)
  with pytest.raises(ValueError):
    JobWorker(queue=LocalJobQueue(), deps=deps, registry=ArtifactRegistry(InMemoryKeyValueStore()), concurrency=0)


def test_build_job_worker_uses_settings(settings, uploader) -> None:
  worker = build_job_worker(replace(settings, default_provider="meshy", worker_concurrency=3), queue=LocalJobQueue(), registry=ArtifactRegistry(InMemoryKeyValueStore()), uploader=uploader, providers=[])
  assert worker._concurrency == 3
  assert worker._deps.env_provider == "meshy"
