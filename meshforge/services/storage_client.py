"""Object storage helper for generated model artifacts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config
from starlette.concurrency import run_in_threadpool

from meshforge.config import Settings, StorageSettings

logger = logging.getLogger(__name__)

_ASSET_PREFIX = "assets/"
_LOCAL_URL_PREFIX = "/storage/"


def content_type_for(extension: str) -> str:
  """Return the upload content type for a model file extension."""
  if extension.lower() == "glb":
    return "model/gltf-binary"
  return "application/octet-stream"


class ArtifactUploader:
  """Writes artifacts to S3 when configured, else to a local directory served at /storage."""

  def __init__(self, *, storage: StorageSettings | None, local_dir: str | Path, s3_client: Any | None = None, signed_url_ttl_seconds: int = 3600) -> None:
    self._storage = storage
    self._local_dir = Path(local_dir)
    self._signed_url_ttl_seconds = signed_url_ttl_seconds
    self._client = s3_client
    # Build the SDK client from settings unless a client was injected.
    if self._client is None and storage is not None:
      self._client = boto3.client(
        "s3",
        region_name=storage.region,
        aws_access_key_id=storage.access_key_id,
        aws_secret_access_key=storage.secret_access_key,
        endpoint_url=storage.endpoint,
        config=Config(s3={"addressing_style": "path"}) if storage.force_path_style else None,
      )

  @property
  def uses_s3(self) -> bool:
    """Return True when uploads go to the S3 bucket."""
    return self._client is not None and self._storage is not None

  async def upload(self, data: bytes, asset_id: str, content_type: str) -> str:
    """Store bytes under the asset id and return the artifact URL.

    The key depends only on the asset id, so a redelivered job overwrites its
    own earlier upload instead of creating a second object.
    """
    if self.uses_s3:
      key = f"{_ASSET_PREFIX}{asset_id}"
      await run_in_threadpool(self._client.put_object, Bucket=self._storage.bucket, Key=key, Body=data, ContentType=content_type)
      logger.debug("Uploaded %s bytes to s3://%s/%s", len(data), self._storage.bucket, key)
      return f"s3://{self._storage.bucket}/{key}"

    await run_in_threadpool(self._write_local, asset_id, data)
    return f"{_LOCAL_URL_PREFIX}{asset_id}"

  def _write_local(self, asset_id: str, data: bytes) -> None:
    self._local_dir.mkdir(parents=True, exist_ok=True)
    (self._local_dir / asset_id).write_bytes(data)

  def local_path(self, asset_id: str) -> Path:
    """Return the on-disk path for a locally stored artifact."""
    return self._local_dir / asset_id

  async def presign_download(self, asset_url: str) -> str:
    """Return a time-limited download URL for s3:// artifacts; other URLs pass through."""
    if not self.uses_s3 or not asset_url.startswith("s3://"):
      return asset_url

    prefix = f"s3://{self._storage.bucket}/"
    if not asset_url.startswith(prefix):
      return asset_url
    key = asset_url[len(prefix) :]
    params = {"Bucket": self._storage.bucket, "Key": key}
    return await run_in_threadpool(self._client.generate_presigned_url, "get_object", Params=params, ExpiresIn=self._signed_url_ttl_seconds)


def build_artifact_uploader(settings: Settings) -> ArtifactUploader:
  """Create an uploader with environment-aware storage selection."""
  if settings.storage is None:
    logger.info("S3 not configured, using local storage at %s", settings.storage_dir)
  else:
    logger.info("S3 configured: bucket=%s", settings.storage.bucket)
  return ArtifactUploader(storage=settings.storage, local_dir=settings.storage_dir, signed_url_ttl_seconds=settings.signed_url_ttl_seconds)
