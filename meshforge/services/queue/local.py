from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from meshforge.jobs.models import QueueState
from meshforge.services.queue.interface import Delivery, EnqueueOptions, JobQueue, QueuedJob

logger = logging.getLogger(__name__)


class LocalJobQueue(JobQueue):
  """In-process queue with attempts and exponential redelivery backoff.

  State lives in memory, so jobs do not survive a restart. Suitable for local
  development and for a single process running the API and worker together.
  """

  def __init__(self, *, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
    self._sleep = sleep
    self._jobs: dict[str, QueuedJob] = {}
    self._options: dict[str, EnqueueOptions] = {}
    self._ready: asyncio.Queue[str] = asyncio.Queue()
    self._timers: set[asyncio.Task[None]] = set()

  async def add(self, job_id: str, payload: dict[str, Any], options: EnqueueOptions) -> None:
    if job_id in self._jobs:
      # Keyed by job id: a duplicate add is a no-op.
      logger.debug("Job %s already enqueued; ignoring duplicate add", job_id)
      return
    self._jobs[job_id] = QueuedJob(job_id=job_id, payload=dict(payload), state=QueueState.WAITING)
    self._options[job_id] = options
    self._ready.put_nowait(job_id)

  async def get_job(self, job_id: str) -> QueuedJob | None:
    return self._jobs.get(job_id)

  async def reserve(self) -> Delivery:
    job_id = await self._ready.get()
    job = self._jobs[job_id]
    job = replace(job, state=QueueState.ACTIVE, attempts_made=job.attempts_made + 1)
    self._jobs[job_id] = job
    return Delivery(job_id=job_id, payload=job.payload, attempt=job.attempts_made)

  async def complete(self, job_id: str, return_value: dict[str, Any]) -> None:
    self._jobs[job_id] = replace(self._jobs[job_id], state=QueueState.COMPLETED, return_value=dict(return_value), failed_reason=None)

  async def fail(self, job_id: str, reason: str) -> QueueState:
    job = self._jobs[job_id]
    options = self._options.get(job_id, EnqueueOptions())
    if job.attempts_made >= options.attempts:
      self._jobs[job_id] = replace(job, state=QueueState.FAILED, failed_reason=reason)
      return QueueState.FAILED

    delay = backoff_delay(options.backoff_seconds, job.attempts_made)
    self._jobs[job_id] = replace(job, state=QueueState.DELAYED, failed_reason=reason)
    logger.info("Job %s attempt %d failed; redelivering in %.1fs", job_id, job.attempts_made, delay)
    timer = asyncio.create_task(self._redeliver(job_id, delay))
    self._timers.add(timer)
    timer.add_done_callback(self._timers.discard)
    return QueueState.DELAYED

  async def _redeliver(self, job_id: str, delay: float) -> None:
    await self._sleep(delay)
    self._jobs[job_id] = replace(self._jobs[job_id], state=QueueState.WAITING)
    self._ready.put_nowait(job_id)

  async def close(self) -> None:
    for timer in list(self._timers):
      timer.cancel()
    if self._timers:
      await asyncio.gather(*self._timers, return_exceptions=True)
    self._timers.clear()


def backoff_delay(base_seconds: float, attempts_made: int) -> float:
  """Exponential backoff: base, 2*base, 4*base, ..."""
  return base_seconds * (2 ** max(attempts_made - 1, 0))
