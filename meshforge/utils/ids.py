"""Identifier utilities."""

from __future__ import annotations

import uuid


def generate_job_id() -> str:
  """Return a new job identifier."""
  return str(uuid.uuid4())


def asset_id_for(job_id: str, extension: str) -> str:
  """Return the deterministic asset identifier for a job's artifact."""
  return f"asset-{job_id}.{extension.lower()}"
