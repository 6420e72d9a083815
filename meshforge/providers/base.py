"""Base interfaces for 3D generation providers."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from meshforge.errors import ProviderError
from meshforge.jobs.models import AssetFormat, JobRecord, ProviderResult
from meshforge.services.storage_client import ArtifactUploader, content_type_for
from meshforge.utils.ids import asset_id_for


@dataclass(frozen=True)
class ProviderContext:
  """Per-call collaborators handed to an adapter by the orchestrator."""

  uploader: ArtifactUploader


@dataclass(frozen=True)
class ResultFile:
  """One candidate model file reported by a provider."""

  type: str | None
  url: str | None


class ProviderAdapter(ABC):
  """Uniform capability interface over a vendor-specific generation API."""

  name: str

  @abstractmethod
  def is_configured(self) -> bool:
    """Return True when credentials for this provider are present."""

  @abstractmethod
  async def generate_from_text(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    """Generate a model from the job prompt."""

  @abstractmethod
  async def generate_from_image(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    """Generate a model from the job's single reference image."""

  @abstractmethod
  async def generate_from_multiview(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    """Generate a model from the job's front/left/right views."""


def pick_result_file(files: list[ResultFile] | None, requested_format: AssetFormat, *, provider: str) -> ResultFile:
  """Pick the file matching the requested format, else the first file with a URL."""
  if not files:
    raise ProviderError(f"No result files returned from {provider}")

  wanted = requested_format.value
  exact = next((item for item in files if (item.type or "").lower() == wanted and item.url), None)
  chosen = exact or next((item for item in files if item.url), None)
  if chosen is None:
    raise ProviderError("Result file URL is missing")
  return chosen


async def upload_result_file(data: bytes, extension: str, job: JobRecord, ctx: ProviderContext, *, texture_map_ids: dict[str, str] | None = None) -> ProviderResult:
  """Upload a downloaded artifact under the job-derived key and build the result."""
  extension = extension.lower()
  asset_id = asset_id_for(job.job_id, extension)
  asset_url = await ctx.uploader.upload(data, asset_id, content_type_for(extension))
  try:
    asset_format = AssetFormat(extension)
  except ValueError:
    asset_format = None
  return ProviderResult(asset_id=asset_id, asset_url=asset_url, texture_map_ids=texture_map_ids or None, format=asset_format)


def elapsed_ms(started: float) -> int:
  """Milliseconds since a perf-counter reading, for step timing logs."""
  return int((time.perf_counter() - started) * 1000)
