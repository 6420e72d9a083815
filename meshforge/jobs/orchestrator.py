"""Dispatch a job to a provider adapter or the placeholder generator."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from meshforge.errors import InputError
from meshforge.jobs.models import JobRecord, JobType, ProviderResult
from meshforge.jobs.placeholder import generate_placeholder
from meshforge.providers.base import ProviderAdapter, ProviderContext
from meshforge.providers.registry import select_provider
from meshforge.services.storage_client import ArtifactUploader

logger = logging.getLogger(__name__)

PlaceholderGenerator = Callable[[str, ArtifactUploader], Awaitable[ProviderResult]]


@dataclass
class Generate3DDeps:
  """Collaborators for ``generate_3d``; delay and random are injectable for tests."""

  providers: Sequence[ProviderAdapter]
  uploader: ArtifactUploader
  env_provider: str | None = None
  delay: Callable[[float], Awaitable[None]] = asyncio.sleep
  random: Callable[[], float] = field(default=random.random)
  generate_placeholder: PlaceholderGenerator = generate_placeholder


async def generate_3d(job: JobRecord, deps: Generate3DDeps) -> ProviderResult:
  """Run one generation attempt for a job and return the stored artifact.

  Provider errors propagate unchanged; retrying is left to the adapter's
  transport layer and to the queue's redelivery.
  """
  ctx = ProviderContext(uploader=deps.uploader)
  requested = job.provider.value if job.provider else None
  provider = select_provider(deps.providers, requested, deps.env_provider)

  if provider is None:
    logger.info("[Mock Provider] Generating 3D for job %s (type=%s, prompt=%.50s)", job.job_id, job.type.value, job.prompt)
    # Emulate generation latency.
    await deps.delay(1.0 + deps.random() * 2.0)
    return await deps.generate_placeholder(job.job_id, deps.uploader)

  if job.type == JobType.MULTIVIEW:
    if job.view_images is None or not job.view_images.is_complete():
      raise InputError("front/left/right images are required for multiview-to-3D generation")
    return await provider.generate_from_multiview(job, ctx)

  if job.type == JobType.IMAGE:
    if not job.image_url:
      raise InputError("Image URL is required for image-to-3D generation")
    return await provider.generate_from_image(job, ctx)

  return await provider.generate_from_text(job, ctx)
