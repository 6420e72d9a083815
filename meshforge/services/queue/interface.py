from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from meshforge.jobs.models import QueueState


@dataclass(frozen=True)
class EnqueueOptions:
  """Delivery policy for one job: total attempts and exponential backoff base."""

  attempts: int = 2
  backoff_seconds: float = 5.0


@dataclass(frozen=True)
class QueuedJob:
  """Snapshot of a job as the queue sees it."""

  job_id: str
  payload: dict[str, Any]
  state: QueueState
  attempts_made: int = 0
  return_value: dict[str, Any] | None = None
  failed_reason: str | None = None


@dataclass(frozen=True)
class Delivery:
  """One delivery of a job to a worker; ``attempt`` starts at 1."""

  job_id: str
  payload: dict[str, Any]
  attempt: int


class JobQueue(Protocol):
  """Interface for the durable job queue (at-least-once delivery)."""

  async def add(self, job_id: str, payload: dict[str, Any], options: EnqueueOptions) -> None:
    """Enqueue a job keyed by its id."""
    ...

  async def get_job(self, job_id: str) -> QueuedJob | None:
    """Return the job's current state, or None when the id is unknown."""
    ...

  async def reserve(self) -> Delivery:
    """Wait for the next job ready for processing and mark it active."""
    ...

  async def complete(self, job_id: str, return_value: dict[str, Any]) -> None:
    """Record a successful attempt."""
    ...

  async def fail(self, job_id: str, reason: str) -> QueueState:
    """Record a failed attempt; returns ``delayed`` when it will be redelivered."""
    ...

  async def close(self) -> None:
    """Release timers and connections."""
    ...
