"""Test configuration for importing the application package."""

from __future__ import annotations

import os
import sys
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from meshforge.config import Settings, get_settings  # noqa: E402
from meshforge.jobs.models import AssetFormat, JobRecord, JobType  # noqa: E402
from meshforge.providers.base import ProviderContext  # noqa: E402
from meshforge.services.storage_client import ArtifactUploader  # noqa: E402

_PROVIDER_ENV_PREFIXES = ("TENCENTCLOUD_", "HUNYUAN_", "MESHY_")
_ISOLATED_ENV = {"PROVIDER", "MESHFORGE_DEFAULT_PROVIDER", "S3_BUCKET", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"}


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture(autouse=True)
def _isolate_provider_env(monkeypatch):
  """Provider configuration is read from the environment; start every test unconfigured."""
  for name in list(os.environ):
    if name.startswith(_PROVIDER_ENV_PREFIXES) or name in _ISOLATED_ENV:
      monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path) -> Settings:
  return replace(get_settings(), storage_dir=str(tmp_path / "storage"), log_dir=str(tmp_path / "logs"), default_provider=None, storage=None, run_embedded_worker=False)


@pytest.fixture
def uploader(tmp_path) -> ArtifactUploader:
  return ArtifactUploader(storage=None, local_dir=tmp_path / "storage")


@pytest.fixture
def provider_ctx(uploader) -> ProviderContext:
  return ProviderContext(uploader=uploader)


async def _no_sleep(_seconds: float) -> None:
  return None


def _make_job(**overrides) -> JobRecord:
  values = {"job_id": "job-1", "type": JobType.TEXT, "prompt": "a red car", "created_at": 1700000000000, "format": AssetFormat.GLB}
  values.update(overrides)
  return JobRecord(**values)


@pytest.fixture
def no_sleep():
  return _no_sleep


@pytest.fixture
def make_job():
  return _make_job
