"""Job history collaborator: a bounded, newest-first log of submitted jobs."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import Any, Protocol

from meshforge.jobs.models import ClientStatus, JobType

MAX_HISTORY_SIZE = 1000


@dataclass(frozen=True)
class HistoryEntry:
  job_id: str
  type: JobType
  prompt: str
  status: ClientStatus
  created_at: int
  asset_id: str | None = None

  def to_payload(self) -> dict[str, Any]:
    return {
      "jobId": self.job_id,
      "type": self.type.value,
      "prompt": self.prompt,
      "status": self.status.value,
      "createdAt": self.created_at,
      "assetId": self.asset_id,
    }


class HistoryStore(Protocol):
  """Interface for job history storage."""

  async def save(self, entry: HistoryEntry) -> None:
    """Record a new job at the head of the history."""
    ...

  async def update_status(self, job_id: str, status: ClientStatus, asset_id: str | None = None) -> None:
    """Update the status (and asset id, when given) of a recorded job."""
    ...

  async def list_entries(self, *, job_type: JobType | None = None, status: ClientStatus | None = None) -> list[HistoryEntry]:
    """Return entries newest first, optionally filtered."""
    ...


class InMemoryHistoryStore(HistoryStore):
  def __init__(self, *, max_size: int = MAX_HISTORY_SIZE) -> None:
    self._entries: list[HistoryEntry] = []
    self._max_size = max_size

  async def save(self, entry: HistoryEntry) -> None:
    self._entries.insert(0, entry)
    del self._entries[self._max_size :]

  async def update_status(self, job_id: str, status: ClientStatus, asset_id: str | None = None) -> None:
    for index, entry in enumerate(self._entries):
      if entry.job_id == job_id:
        self._entries[index] = replace(entry, status=status, asset_id=asset_id if asset_id is not None else entry.asset_id)
        return

  async def list_entries(self, *, job_type: JobType | None = None, status: ClientStatus | None = None) -> list[HistoryEntry]:
    entries = self._entries
    if job_type is not None:
      entries = [entry for entry in entries if entry.type == job_type]
    if status is not None:
      entries = [entry for entry in entries if entry.status == status]
    return list(entries)


def new_history_entry(job_id: str, job_type: JobType, prompt: str, *, created_at: int | None = None) -> HistoryEntry:
  """Build the initial ``queued`` entry for a freshly enqueued job."""
  return HistoryEntry(job_id=job_id, type=job_type, prompt=prompt, status=ClientStatus.QUEUED, created_at=created_at if created_at is not None else int(time.time() * 1000))


async def list_history(history: HistoryStore, *, page: int, limit: int, job_type: JobType | None = None, status: ClientStatus | None = None) -> dict[str, Any]:
  """Return one page of history entries with pagination metadata."""
  entries = await history.list_entries(job_type=job_type, status=status)
  total = len(entries)
  start = (page - 1) * limit
  return {
    "data": [entry.to_payload() for entry in entries[start : start + limit]],
    "pagination": {"page": page, "limit": limit, "total": total, "totalPages": math.ceil(total / limit)},
  }
