"""Tests for the job history store."""

from __future__ import annotations

import pytest

from meshforge.jobs.models import ClientStatus, JobType
from meshforge.services.history import InMemoryHistoryStore, list_history, new_history_entry


@pytest.mark.anyio
async def test_history_is_bounded_and_newest_first() -> None:
  history = InMemoryHistoryStore(max_size=2)
  for index in range(3):
    await history.save(new_history_entry(f"job-{index}", JobType.TEXT, "p", created_at=index))

  assert [entry.job_id for entry in await history.list_entries()] == ["job-2", "job-1"]


@pytest.mark.anyio
async def test_update_status_keeps_asset_when_not_given() -> None:
  history = InMemoryHistoryStore()
  await history.save(new_history_entry("job-1", JobType.TEXT, "p", created_at=1))
  await history.update_status("job-1", ClientStatus.SUCCEEDED, "asset-job-1.glb")
  await history.update_status("job-1", ClientStatus.SUCCEEDED)
  await history.update_status("unknown", ClientStatus.FAILED)

  [entry] = await history.list_entries()
  assert entry.status == ClientStatus.SUCCEEDED
  assert entry.asset_id == "asset-job-1.glb"


@pytest.mark.anyio
async def test_list_history_pages_past_the_end() -> None:
  history = InMemoryHistoryStore()
  await history.save(new_history_entry("job-1", JobType.IMAGE, "p", created_at=1))

  result = await list_history(history, page=3, limit=10)
  assert result == {"data": [], "pagination": {"page": 3, "limit": 10, "total": 1, "totalPages": 1}}

  empty = await list_history(history, page=1, limit=10, job_type=JobType.TEXT)
  assert empty["pagination"]["totalPages"] == 0
