"""Tencent Hunyuan 3D provider (TC3-HMAC-SHA256 signed JSON API)."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from meshforge.errors import InputError, ProviderError
from meshforge.jobs.models import AssetFormat, JobRecord, JobType, ProviderResult, SkeletonPreset
from meshforge.providers.base import ProviderAdapter, ProviderContext, ResultFile, elapsed_ms, pick_result_file, upload_result_file
from meshforge.providers.http import ClientFactory, default_client_factory, download_file, request_with_retry
from meshforge.providers.polling import DEFAULT_MAX_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL_SECONDS, poll_until
from meshforge.utils.env import env_flag, env_int, env_str

logger = logging.getLogger(__name__)

DEFAULT_HOST = "ai3d.tencentcloudapi.com"
DEFAULT_SERVICE = "ai3d"
DEFAULT_VERSION = "2025-05-13"
DEFAULT_REGION = "ap-guangzhou"
DEFAULT_MODEL = "3.0"
DEFAULT_RESULT_FORMAT = "GLB"
DEFAULT_MAX_INPUT_IMAGE_BYTES = 6 * 1024 * 1024

_CONTENT_TYPE = "application/json; charset=utf-8"
_SIGNED_HEADERS = "content-type;host"
_ALGORITHM = "TC3-HMAC-SHA256"

RAPID_SUBMIT_ACTION = "SubmitHunyuanTo3DRapidJob"
PRO_SUBMIT_ACTION = "SubmitHunyuanTo3DProJob"
RAPID_QUERY_ACTION = "QueryHunyuanTo3DRapidJob"
PRO_QUERY_ACTION = "QueryHunyuanTo3DProJob"

_TERMINAL_STATUSES = {"DONE", "FAIL"}


@dataclass(frozen=True)
class HunyuanConfig:
  """Hunyuan credentials and generation knobs resolved from the environment."""

  secret_id: str
  secret_key: str
  region: str = DEFAULT_REGION
  host: str = DEFAULT_HOST
  service: str = DEFAULT_SERVICE
  version: str = DEFAULT_VERSION
  mode: str = "rapid"
  model: str | None = DEFAULT_MODEL
  result_format: str | None = DEFAULT_RESULT_FORMAT
  enable_pbr: bool | None = None
  enable_geometry: bool | None = None
  face_count: int | None = None
  generate_type: str | None = None
  polygon_type: str | None = None
  poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
  max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS
  image_input_mode: str = "auto"
  max_input_image_bytes: int = DEFAULT_MAX_INPUT_IMAGE_BYTES


@dataclass(frozen=True)
class HunyuanJobStatus:
  """Normalized query response; vendor errors are folded into a FAIL status."""

  status: str
  error_code: str | None = None
  error_message: str | None = None
  result_files: tuple[ResultFile, ...] = ()


def load_hunyuan_config() -> HunyuanConfig | None:
  """Read Hunyuan settings from the environment; None when credentials are missing."""
  secret_id = env_str("TENCENTCLOUD_SECRET_ID")
  secret_key = env_str("TENCENTCLOUD_SECRET_KEY")
  if not secret_id or not secret_key:
    return None

  mode = (env_str("HUNYUAN_MODE") or "rapid").lower()
  image_input_mode = (env_str("HUNYUAN_IMAGE_INPUT_MODE") or "auto").lower()
  poll_interval_ms = env_int("HUNYUAN_POLL_INTERVAL_MS", int(DEFAULT_POLL_INTERVAL_SECONDS * 1000))

  return HunyuanConfig(
    secret_id=secret_id,
    secret_key=secret_key,
    region=env_str("TENCENTCLOUD_REGION", DEFAULT_REGION),
    host=env_str("HUNYUAN_HOST", DEFAULT_HOST),
    service=env_str("HUNYUAN_SERVICE", DEFAULT_SERVICE),
    version=env_str("HUNYUAN_VERSION", DEFAULT_VERSION),
    mode="pro" if mode == "pro" else "rapid",
    model=env_str("HUNYUAN_MODEL", DEFAULT_MODEL),
    result_format=env_str("HUNYUAN_RESULT_FORMAT", DEFAULT_RESULT_FORMAT),
    enable_pbr=env_flag("HUNYUAN_ENABLE_PBR"),
    enable_geometry=env_flag("HUNYUAN_ENABLE_GEOMETRY"),
    face_count=env_int("HUNYUAN_FACE_COUNT"),
    generate_type=env_str("HUNYUAN_GENERATE_TYPE"),
    polygon_type=env_str("HUNYUAN_POLYGON_TYPE"),
    poll_interval_seconds=poll_interval_ms / 1000,
    max_poll_attempts=env_int("HUNYUAN_MAX_POLL_ATTEMPTS", DEFAULT_MAX_POLL_ATTEMPTS),
    image_input_mode=image_input_mode if image_input_mode in {"url", "base64"} else "auto",
    max_input_image_bytes=env_int("HUNYUAN_MAX_INPUT_IMAGE_BYTES", DEFAULT_MAX_INPUT_IMAGE_BYTES),
  )


def _image_source(job: JobRecord, image_base64: str | None) -> dict[str, Any]:
  if image_base64:
    return {"ImageBase64": image_base64}
  if job.image_url:
    return {"ImageUrl": job.image_url}
  raise InputError("Image URL is required for image-to-3D generation")


def _skeleton_preset(job: JobRecord) -> str | None:
  if job.format != AssetFormat.FBX or job.skeleton_options is None:
    return None
  if job.skeleton_options.preset == SkeletonPreset.NONE:
    return None
  return job.skeleton_options.preset.value


def build_hunyuan_submit_payload(
  job: JobRecord,
  *,
  mode: str,
  model: str | None = None,
  result_format: str | None = None,
  enable_pbr: bool | None = None,
  enable_geometry: bool | None = None,
  face_count: int | None = None,
  generate_type: str | None = None,
  polygon_type: str | None = None,
  image_base64: str | None = None,
) -> tuple[str, dict[str, Any]]:
  """Return the submit action name and request body for a job.

  Rapid mode covers text and single-image input; pro mode adds multiview. FBX
  jobs force ``ResultFormat=FBX`` and carry the skeleton preset when one is set.
  """
  wants_fbx = job.format == AssetFormat.FBX
  skeleton = _skeleton_preset(job)

  if mode == "rapid":
    if job.type == JobType.MULTIVIEW:
      raise ProviderError("Hunyuan rapid mode does not support multiview input; use HUNYUAN_MODE=pro")
    payload: dict[str, Any] = {}
    if job.type == JobType.IMAGE:
      payload.update(_image_source(job, image_base64))
    else:
      payload["Prompt"] = job.prompt
    effective_format = "FBX" if wants_fbx else result_format
    if effective_format:
      payload["ResultFormat"] = effective_format
    if isinstance(enable_pbr, bool):
      payload["EnablePBR"] = enable_pbr
    if isinstance(enable_geometry, bool):
      payload["EnableGeometry"] = enable_geometry
    if skeleton:
      payload["SkeletonPreset"] = skeleton
    return RAPID_SUBMIT_ACTION, payload

  payload = {"Model": model or DEFAULT_MODEL}
  if job.type == JobType.MULTIVIEW:
    views = job.view_images
    if views is None or not views.is_complete():
      raise InputError("front/left/right images are required for multiview-to-3D generation")
    payload["ImageUrl"] = views.front
    payload["MultiViewImages"] = [
      {"ViewType": "left", "ViewImageUrl": views.left},
      {"ViewType": "right", "ViewImageUrl": views.right},
    ]
  elif job.type == JobType.IMAGE:
    payload.update(_image_source(job, image_base64))
  else:
    payload["Prompt"] = job.prompt
  if isinstance(enable_pbr, bool):
    payload["EnablePBR"] = enable_pbr
  if isinstance(face_count, int):
    payload["FaceCount"] = face_count
  if generate_type:
    payload["GenerateType"] = generate_type
  if polygon_type:
    payload["PolygonType"] = polygon_type
  if wants_fbx:
    payload["ResultFormat"] = "FBX"
  if skeleton:
    payload["SkeletonPreset"] = skeleton
  return PRO_SUBMIT_ACTION, payload


def _sha256_hex(message: str) -> str:
  return hashlib.sha256(message.encode("utf-8")).hexdigest()


def _hmac_sha256(key: bytes, message: str) -> bytes:
  return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def sign_tc3_request(action: str, body: str, config: HunyuanConfig, timestamp: int) -> dict[str, str]:
  """Build the signed header set for one TC3-HMAC-SHA256 POST to ``/``."""
  date = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")

  canonical_headers = f"content-type:{_CONTENT_TYPE}\nhost:{config.host}\n"
  canonical_request = "\n".join(["POST", "/", "", canonical_headers, _SIGNED_HEADERS, _sha256_hex(body)])
  credential_scope = f"{date}/{config.service}/tc3_request"
  string_to_sign = "\n".join([_ALGORITHM, str(timestamp), credential_scope, _sha256_hex(canonical_request)])

  secret_date = _hmac_sha256(f"TC3{config.secret_key}".encode("utf-8"), date)
  secret_service = _hmac_sha256(secret_date, config.service)
  secret_signing = _hmac_sha256(secret_service, "tc3_request")
  signature = hmac.new(secret_signing, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

  authorization = f"{_ALGORITHM} Credential={config.secret_id}/{credential_scope}, SignedHeaders={_SIGNED_HEADERS}, Signature={signature}"
  return {
    "Authorization": authorization,
    "Content-Type": _CONTENT_TYPE,
    "Host": config.host,
    "X-TC-Action": action,
    "X-TC-Version": config.version,
    "X-TC-Timestamp": str(timestamp),
    "X-TC-Region": config.region,
  }


def should_retry_with_base64(job: JobRecord, status: HunyuanJobStatus, config: HunyuanConfig, used_base64: bool) -> bool:
  """Return True when a URL image job failed because the vendor could not fetch the image."""
  if used_base64 or config.image_input_mode != "auto" or job.type != JobType.IMAGE or not job.image_url:
    return False
  code = status.error_code or ""
  message = status.error_message or ""
  return "DownloadError" in code or "DownloadError" in message


class HunyuanProvider(ProviderAdapter):
  """Adapter for Hunyuan rapid/pro jobs: submit, poll, download, upload."""

  name = "hunyuan"

  def __init__(
    self,
    *,
    client_factory: ClientFactory = default_client_factory,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.time,
  ) -> None:
    self._client_factory = client_factory
    self._sleep = sleep
    self._clock = clock

  def is_configured(self) -> bool:
    return bool(env_str("TENCENTCLOUD_SECRET_ID") and env_str("TENCENTCLOUD_SECRET_KEY"))

  async def generate_from_text(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    return await self._generate(job, ctx)

  async def generate_from_image(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    return await self._generate(job, ctx)

  async def generate_from_multiview(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    return await self._generate(job, ctx)

  async def _call(self, action: str, payload: dict[str, Any], config: HunyuanConfig) -> dict[str, Any]:
    body = json.dumps(payload, separators=(",", ":"))
    headers = sign_tc3_request(action, body, config, int(self._clock()))
    response = await request_with_retry(self._client_factory, "POST", f"https://{config.host}/", sleep=self._sleep, content=body.encode("utf-8"), headers=headers)
    try:
      parsed = response.json()
    except ValueError as exc:
      raise ProviderError(f"Hunyuan returned a non-JSON response (HTTP {response.status_code})", code=str(response.status_code)) from exc
    return parsed.get("Response") or {}

  async def _image_to_base64(self, image_url: str, max_bytes: int) -> str:
    data = await download_file(self._client_factory, image_url, sleep=self._sleep)
    if not data:
      raise ProviderError("Image download returned empty body")
    if len(data) > max_bytes:
      raise ProviderError(f"Image is too large for Hunyuan base64 input ({len(data)} bytes > {max_bytes} bytes)")
    return base64.b64encode(data).decode("ascii")

  async def _submit(self, job: JobRecord, config: HunyuanConfig, *, use_image_base64: bool) -> str:
    image_base64 = None
    if use_image_base64 and job.type == JobType.IMAGE:
      if not job.image_url:
        raise InputError("Image URL is required for image-to-3D generation")
      image_base64 = await self._image_to_base64(job.image_url, config.max_input_image_bytes)

    action, payload = build_hunyuan_submit_payload(
      job,
      mode=config.mode,
      model=config.model,
      result_format=config.result_format,
      enable_pbr=config.enable_pbr,
      enable_geometry=config.enable_geometry,
      face_count=config.face_count,
      generate_type=config.generate_type,
      polygon_type=config.polygon_type,
      image_base64=image_base64,
    )
    response = await self._call(action, payload, config)
    error = response.get("Error")
    if error:
      raise ProviderError(f"{error.get('Code')}: {error.get('Message')}", code=error.get("Code"))
    job_id = response.get("JobId")
    if not job_id:
      raise ProviderError("Hunyuan submit response did not include a JobId")
    return str(job_id)

  async def _query(self, vendor_job_id: str, config: HunyuanConfig) -> HunyuanJobStatus:
    action = PRO_QUERY_ACTION if config.mode == "pro" else RAPID_QUERY_ACTION
    response = await self._call(action, {"JobId": vendor_job_id}, config)
    error = response.get("Error")
    if error:
      # Query-level API errors end polling as a failed job rather than raising.
      return HunyuanJobStatus(status="FAIL", error_code=error.get("Code"), error_message=f"{error.get('Code')}: {error.get('Message')}")

    files = tuple(ResultFile(type=item.get("Type"), url=item.get("Url")) for item in response.get("ResultFile3Ds") or [])
    return HunyuanJobStatus(status=str(response.get("Status") or ""), error_code=response.get("ErrorCode"), error_message=response.get("ErrorMessage"), result_files=files)

  async def _poll(self, vendor_job_id: str, config: HunyuanConfig) -> HunyuanJobStatus:
    return await poll_until(
      lambda: self._query(vendor_job_id, config),
      lambda status: status.status in _TERMINAL_STATUSES,
      interval_seconds=config.poll_interval_seconds,
      max_attempts=config.max_poll_attempts,
      sleep=self._sleep,
      timeout_message="Hunyuan job polling timeout",
    )

  async def _generate(self, job: JobRecord, ctx: ProviderContext) -> ProviderResult:
    config = load_hunyuan_config()
    if config is None:
      raise ProviderError("Hunyuan credentials are not configured")

    tag = f"[Hunyuan][{job.job_id}]"
    if job.texture_options is not None:
      logger.warning("%s textureOptions are not supported by Hunyuan provider; ignoring", tag)

    t0 = time.perf_counter()
    use_image_base64 = config.image_input_mode == "base64"
    vendor_job_id = await self._submit(job, config, use_image_base64=use_image_base64)
    logger.info("%s submitted hunyuanJobId=%s +%dms", tag, vendor_job_id, elapsed_ms(t0))

    t1 = time.perf_counter()
    status = await self._poll(vendor_job_id, config)
    logger.info("%s poll done status=%s +%dms", tag, status.status, elapsed_ms(t1))

    if status.status == "FAIL" and should_retry_with_base64(job, status, config, use_image_base64):
      logger.warning("%s URL download failed, retrying with ImageBase64", tag)
      use_image_base64 = True
      vendor_job_id = await self._submit(job, config, use_image_base64=True)
      t1 = time.perf_counter()
      status = await self._poll(vendor_job_id, config)
      logger.info("%s retry poll done status=%s +%dms", tag, status.status, elapsed_ms(t1))

    if status.status == "FAIL":
      raise ProviderError(status.error_message or "Hunyuan job failed", code=status.error_code)

    chosen = pick_result_file(list(status.result_files), job.format, provider="Hunyuan")
    t2 = time.perf_counter()
    data = await download_file(self._client_factory, chosen.url, sleep=self._sleep)
    logger.info("%s download done size=%dbytes +%dms", tag, len(data), elapsed_ms(t2))

    t3 = time.perf_counter()
    extension = (chosen.type or "glb").lower()
    result = await upload_result_file(data, extension, job, ctx)
    logger.info("%s upload done +%dms | total +%dms", tag, elapsed_ms(t3), elapsed_ms(t0))
    return result
