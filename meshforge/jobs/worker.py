"""Background processor for queued 3D generation jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from meshforge.config import Settings
from meshforge.jobs.models import ClientStatus, JobRecord, QueueState
from meshforge.jobs.orchestrator import Generate3DDeps, generate_3d
from meshforge.providers.base import ProviderAdapter
from meshforge.services.artifacts import ArtifactRegistry
from meshforge.services.history import HistoryStore
from meshforge.services.queue.interface import Delivery, JobQueue
from meshforge.services.storage_client import ArtifactUploader


class JobWorker:
  """Pulls deliveries from the queue with bounded concurrency.

  Each slot runs one job's whole lifecycle before taking the next delivery.
  ``stop()`` stops taking new deliveries and waits for in-flight jobs.
  """

  def __init__(
    self,
    *,
    queue: JobQueue,
    deps: Generate3DDeps,
    registry: ArtifactRegistry,
    history: HistoryStore | None = None,
    concurrency: int = 2,
  ) -> None:
    if concurrency <= 0:
      raise ValueError("concurrency must be a positive integer")
    self._queue = queue
    self._deps = deps
    self._registry = registry
    self._history = history
    self._concurrency = concurrency
    self._stopping = asyncio.Event()
    self._tasks: list[asyncio.Task[None]] = []
    self._logger = logging.getLogger(__name__)

  @property
  def running(self) -> bool:
    return bool(self._tasks) and not self._stopping.is_set()

  def start(self) -> None:
    if self._tasks:
      return
    self._stopping.clear()
    self._tasks = [asyncio.create_task(self._run_slot(slot), name=f"meshforge-worker-{slot}") for slot in range(self._concurrency)]
    self._logger.info("Worker started with concurrency=%d, waiting for jobs...", self._concurrency)

  async def stop(self) -> None:
    if not self._tasks:
      return
    self._logger.info("Stopping worker; waiting for in-flight jobs")
    self._stopping.set()
    await asyncio.gather(*self._tasks, return_exceptions=True)
    self._tasks = []

  async def _next_delivery(self) -> Delivery | None:
    """Wait for a delivery or a stop request, whichever comes first."""
    reserve = asyncio.ensure_future(self._queue.reserve())
    stop_wait = asyncio.ensure_future(self._stopping.wait())
    try:
      await asyncio.wait({reserve, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
    finally:
      stop_wait.cancel()
    if reserve.done():
      return reserve.result()
    reserve.cancel()
    return None

  async def _run_slot(self, slot: int) -> None:
    while not self._stopping.is_set():
      delivery = await self._next_delivery()
      if delivery is None:
        return
      await self.process(delivery)

  async def process(self, delivery: Delivery) -> None:
    """Run one delivery to completion and report the outcome to the queue."""
    self._logger.info("Processing job %s (attempt %d)", delivery.job_id, delivery.attempt)
    try:
      job = JobRecord.from_payload(delivery.payload)
      result = await generate_3d(job, self._deps)
      await self._registry.register(result)
    except asyncio.CancelledError:
      raise
    except Exception as exc:
      reason = str(exc) or type(exc).__name__
      self._logger.error("Job %s failed: %s", delivery.job_id, reason)
      state = await self._queue.fail(delivery.job_id, reason)
      if state == QueueState.FAILED:
        await self._update_history(delivery.job_id, ClientStatus.FAILED)
      return

    await self._queue.complete(delivery.job_id, result.to_payload())
    await self._update_history(delivery.job_id, ClientStatus.SUCCEEDED, result.asset_id)
    self._logger.info("Job %s completed, asset: %s", delivery.job_id, result.asset_id)

  async def _update_history(self, job_id: str, status: ClientStatus, asset_id: str | None = None) -> None:
    if self._history is None:
      return
    try:
      await self._history.update_status(job_id, status, asset_id)
    except Exception as exc:
      self._logger.warning("Failed to update history for job %s: %s", job_id, exc)


def build_job_worker(
  settings: Settings,
  *,
  queue: JobQueue,
  registry: ArtifactRegistry,
  uploader: ArtifactUploader,
  providers: Sequence[ProviderAdapter],
  history: HistoryStore | None = None,
) -> JobWorker:
  """Wire a worker from settings and already-built collaborators."""
  deps = Generate3DDeps(providers=providers, uploader=uploader, env_provider=settings.default_provider)
  return JobWorker(queue=queue, deps=deps, registry=registry, history=history, concurrency=settings.worker_concurrency)
