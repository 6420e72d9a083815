from __future__ import annotations

from meshforge.config import Settings
from meshforge.services.queue.interface import JobQueue
from meshforge.services.queue.local import LocalJobQueue


def get_job_queue(settings: Settings) -> JobQueue:
  """Factory to get the configured job queue."""
  if settings.queue_backend != "local":
    raise ValueError(f"Unsupported MESHFORGE_QUEUE_BACKEND: {settings.queue_backend}")
  return LocalJobQueue()
