"""Meshy provider (bearer-token REST API with task polling)."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from meshforge.errors import InputError, ProviderError
from meshforge.jobs.models import AssetFormat, JobRecord, ProviderResult, TextureOptions, TextureStyle, ViewImages
from meshforge.providers.base import ProviderAdapter, ProviderContext, elapsed_ms, upload_result_file
from meshforge.providers.http import ClientFactory, default_client_factory, download_file, request_with_retry
from meshforge.providers.polling import DEFAULT_MAX_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL_SECONDS, poll_until
from meshforge.utils.env import env_int, env_str

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.meshy.ai"

TEXT_TO_3D_PATH = "/openapi/v2/text-to-3d"
IMAGE_TO_3D_PATH = "/openapi/v1/image-to-3d"
MULTI_IMAGE_TO_3D_PATH = "/openapi/v1/multi-image-to-3d"

ART_STYLES: dict[TextureStyle, str] = {
  TextureStyle.PHOTOREALISTIC: "realistic",
  TextureStyle.CARTOON: "cartoon",
  TextureStyle.STYLIZED: "low-poly",
  TextureStyle.FLAT: "pbr",
}

# Meshy texture channel -> exposed texture map name.
TEXTURE_CHANNELS: tuple[tuple[str, str], ...] = (
  ("base_color", "albedo"),
  ("normal", "normal"),
  ("roughness", "roughness"),
  ("metallic", "metallic"),
)

_SUCCEEDED = "SUCCEEDED"
_FAILED_STATUSES = {"FAILED", "CANCELED"}


@dataclass(frozen=True)
class MeshyConfig:
  api_key: str
  base_url: str = DEFAULT_BASE_URL
  poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
  max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS


def load_meshy_config() -> MeshyConfig | None:
  """Read Meshy settings from the environment; None without an API key."""
  api_key = env_str("MESHY_API_KEY")
  if not api_key:
    return None
  poll_interval_ms = env_int("MESHY_POLL_INTERVAL_MS", int(DEFAULT_POLL_INTERVAL_SECONDS * 1000))
  return MeshyConfig(
    api_key=api_key,
    base_url=env_str("MESHY_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
    poll_interval_seconds=poll_interval_ms / 1000,
    max_poll_attempts=env_int("MESHY_MAX_POLL_ATTEMPTS", DEFAULT_MAX_POLL_ATTEMPTS),
  )


def _apply_texture_options(payload: dict[str, Any], texture_options: TextureOptions | None) -> dict[str, Any]:
  if texture_options is not None:
    payload["texture_resolution"] = texture_options.resolution
    payload["art_style"] = ART_STYLES[texture_options.style]
  return payload


def _image_task_flags() -> dict[str, Any]:
  return {"should_remesh": True, "should_texture": True, "enable_pbr": True, "save_pre_remeshed_model": False}


def build_text_task_payload(prompt: str, texture_options: TextureOptions | None = None) -> dict[str, Any]:
  """Request body for a text-to-3D preview task."""
  return _apply_texture_options({"mode": "preview", "prompt": prompt, "should_remesh": True}, texture_options)


def build_image_task_payload(image_url: str, texture_options: TextureOptions | None = None) -> dict[str, Any]:
  """Request body for a single-image task."""
  return _apply_texture_options({"image_url": image_url, **_image_task_flags()}, texture_options)


def build_multiview_task_payload(view_images: ViewImages, texture_options: TextureOptions | None = None) -> dict[str, Any]:
  """Request body for a multi-image task; views are sent front, left, right."""
  payload = {"image_urls": [view_images.front, view_images.left, view_images.right], **_image_task_flags()}
  return _apply_texture_options(payload, texture_options)


def extract_texture_map_ids(task: dict[str, Any]) -> dict[str, str] | None:
  """Map the first texture set of a finished task to named channels."""
  texture_sets = task.get("texture_urls") or []
  if not texture_sets:
    return None
  first = texture_sets[0] or {}
  maps = {name: first[channel] for channel, name in TEXTURE_CHANNELS if first.get(channel)}
  return maps or None


class MeshyProvider(ProviderAdapter):
  """Adapter for Meshy text, image and multi-image tasks."""

  name = "meshy"

  def __init__(self, *, client_factory: ClientFactory = default_client_factory, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
    self._client_factory = client_factory
    self._sleep = sleep

  def is_configured(self) -> bool:
    return env_str("MESHY_API_KEY") is not None

  async def generate_from_text(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    payload = build_text_task_payload(job.prompt, job.texture_options)
    return await self._run_task(job, ctx, TEXT_TO_3D_PATH, payload)

  async def generate_from_image(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    if not job.image_url:
      raise InputError("Image URL is required for image-to-3D generation")
    payload = build_image_task_payload(job.image_url, job.texture_options)
    return await self._run_task(job, ctx, IMAGE_TO_3D_PATH, payload)

  async def generate_from_multiview(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    if job.view_images is None or not job.view_images.is_complete():
      raise InputError("front/left/right images are required for multiview-to-3D generation")
    payload = build_multiview_task_payload(job.view_images, job.texture_options)
    return await self._run_task(job, ctx, MULTI_IMAGE_TO_3D_PATH, payload)

  async def _request(self, method: str, path: str, config: MeshyConfig, body: dict[str, Any] | None = None) -> dict[str, Any]:
    headers = {"Authorization": f"Bearer {config.api_key}", "Content-Type": "application/json"}
    response = await request_with_retry(self._client_factory, method, f"{config.base_url}{path}", sleep=self._sleep, headers=headers, json=body)
    if not 200 <= response.status_code < 300:
      raise ProviderError(f"Meshy API error: {response.status_code} - {response.text}", code=str(response.status_code))
    try:
      return response.json()
    except ValueError as exc:
      raise ProviderError(f"Meshy returned a non-JSON response for {path}") from exc

  async def _fetch_task(self, path: str, task_id: str, config: MeshyConfig, tag: str) -> dict[str, Any]:
    task = await self._request("GET", f"{path}/{task_id}", config)
    logger.debug("%s task %s progress: %s%%", tag, task_id, task.get("progress"))
    status = task.get("status")
    if status in _FAILED_STATUSES:
      message = (task.get("task_error") or {}).get("message") or "Task failed or canceled"
      raise ProviderError(f"Meshy task {status.lower()}: {message}", code=status)
    return task

  async def _run_task(self, job: JobRecord, ctx: ProviderContext, path: str, payload: dict[str, Any]) -> ProviderResult:
    config = load_meshy_config()
    if config is None:
      raise ProviderError("Meshy API key is not configured")

    tag = f"[Meshy][{job.job_id}]"
    t0 = time.perf_counter()
    created = await self._request("POST", path, config, payload)
    task_id = created.get("result")
    if not task_id:
      raise ProviderError("Meshy create response did not include a task id")
    logger.info("%s task created %s +%dms", tag, task_id, elapsed_ms(t0))

    t1 = time.perf_counter()
    task = await poll_until(
      lambda: self._fetch_task(path, task_id, config, tag),
      lambda item: item.get("status") == _SUCCEEDED,
      interval_seconds=config.poll_interval_seconds,
      max_attempts=config.max_poll_attempts,
      sleep=self._sleep,
      timeout_message="Meshy task polling timeout",
    )
    logger.info("%s poll done +%dms", tag, elapsed_ms(t1))

    extension = AssetFormat.FBX.value if job.format == AssetFormat.FBX else AssetFormat.GLB.value
    model_url = (task.get("model_urls") or {}).get(extension)
    if not model_url:
      raise ProviderError(f"No {extension.upper()} URL in Meshy response")

    t2 = time.perf_counter()
    data = await download_file(self._client_factory, model_url, sleep=self._sleep)
    logger.info("%s download done size=%dbytes +%dms", tag, len(data), elapsed_ms(t2))

    t3 = time.perf_counter()
    result = await upload_result_file(data, extension, job, ctx, texture_map_ids=extract_texture_map_ids(task))
    logger.info("%s upload done +%dms | total +%dms", tag, elapsed_ms(t3), elapsed_ms(t0))
    return result
