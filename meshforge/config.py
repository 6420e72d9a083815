"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from meshforge.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class StorageSettings:
  """S3 connection settings; present only when bucket and credentials are set."""

  bucket: str
  region: str
  access_key_id: str
  secret_access_key: str
  endpoint: str | None
  force_path_style: bool


@dataclass(frozen=True)
class Settings:
  """Typed settings for the meshforge service."""

  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  default_provider: str | None
  queue_backend: str
  worker_concurrency: int
  job_attempts: int
  job_backoff_seconds: float
  run_embedded_worker: bool
  storage_dir: str
  signed_url_ttl_seconds: int
  storage: StorageSettings | None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("MESHFORGE_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("MESHFORGE_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or raw.strip() == "":
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def load_storage_settings() -> StorageSettings | None:
  """Return S3 settings when the bucket and both credentials are configured."""
  bucket = _optional_str(os.getenv("S3_BUCKET"))
  access_key_id = _optional_str(os.getenv("AWS_ACCESS_KEY_ID"))
  secret_access_key = _optional_str(os.getenv("AWS_SECRET_ACCESS_KEY"))
  if not bucket or not access_key_id or not secret_access_key:
    return None

  return StorageSettings(
    bucket=bucket,
    region=_optional_str(os.getenv("AWS_REGION")) or "us-east-1",
    access_key_id=access_key_id,
    secret_access_key=secret_access_key,
    endpoint=_optional_str(os.getenv("S3_ENDPOINT")),
    force_path_style=_parse_bool(os.getenv("S3_FORCE_PATH_STYLE")),
  )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  log_max_bytes = _parse_positive_int("MESHFORGE_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("MESHFORGE_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("MESHFORGE_LOG_BACKUP_COUNT must be zero or a positive integer.")

  job_backoff_seconds = float(os.getenv("MESHFORGE_JOB_BACKOFF_SECONDS", "5"))
  if job_backoff_seconds < 0:
    raise ValueError("MESHFORGE_JOB_BACKOFF_SECONDS must not be negative.")

  # PROVIDER is read as a fallback name for the default provider.
  default_provider = _optional_str(os.getenv("MESHFORGE_DEFAULT_PROVIDER")) or _optional_str(os.getenv("PROVIDER"))

  return Settings(
    debug=_parse_bool(os.getenv("MESHFORGE_DEBUG")),
    allowed_origins=_parse_origins(os.getenv("MESHFORGE_ALLOWED_ORIGINS")),
    log_dir=(os.getenv("MESHFORGE_LOG_DIR") or "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    default_provider=default_provider.lower() if default_provider else None,
    queue_backend=(os.getenv("MESHFORGE_QUEUE_BACKEND") or "local").strip().lower(),
    worker_concurrency=_parse_positive_int("MESHFORGE_WORKER_CONCURRENCY", "2"),
    job_attempts=_parse_positive_int("MESHFORGE_JOB_ATTEMPTS", "2"),
    job_backoff_seconds=job_backoff_seconds,
    run_embedded_worker=_parse_bool(os.getenv("MESHFORGE_RUN_EMBEDDED_WORKER"), default=True),
    storage_dir=(os.getenv("MESHFORGE_STORAGE_DIR") or "./storage").strip(),
    signed_url_ttl_seconds=_parse_positive_int("MESHFORGE_SIGNED_URL_TTL_SECONDS", "3600"),
    storage=load_storage_settings(),
  )
