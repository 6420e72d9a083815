"""Unit tests for generation dispatch."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from meshforge.errors import InputError, ProviderError
from meshforge.jobs.models import JobType, ProviderName, ProviderResult, ViewImages
from meshforge.jobs.orchestrator import Generate3DDeps, generate_3d


def _provider(name: str, configured: bool = True, result: ProviderResult | None = None) -> MagicMock:
  provider = MagicMock()
  provider.name = name
  provider.is_configured.return_value = configured
  result = result or ProviderResult(asset_id="asset-provider", asset_url="url-provider")
  provider.generate_from_text = AsyncMock(return_value=result)
  provider.generate_from_image = AsyncMock(return_value=result)
  provider.generate_from_multiview = AsyncMock(return_value=result)
  return provider


def _deps(providers, uploader, **overrides) -> Generate3DDeps:
  values = {"providers": providers, "uploader": uploader, "delay": AsyncMock(), "random": lambda: 0.5}
  values.update(overrides)
  return Generate3DDeps(**values)


@pytest.mark.anyio
async def test_text_job_uses_provider_text_generation(make_job, uploader) -> None:
  expected = ProviderResult(asset_id="asset-1", asset_url="https://cdn/a.glb")
  provider = _provider("meshy", result=expected)
  result = await generate_3d(make_job(), _deps([provider], uploader))
  assert result == expected
  provider.generate_from_text.assert_awaited_once()
  provider.generate_from_image.assert_not_awaited()


@pytest.mark.anyio
async def test_image_job_without_url_fails(make_job, uploader) -> None:
  provider = _provider("hunyuan")
  with pytest.raises(InputError, match="Image URL is required"):
    await generate_3d(make_job(type=JobType.IMAGE), _deps([provider], uploader))
  provider.generate_from_image.assert_not_awaited()


@pytest.mark.anyio
async def test_image_job_dispatches_to_image_generation(make_job, uploader) -> None:
  provider = _provider("hunyuan")
  await generate_3d(make_job(type=JobType.IMAGE, image_url="https://example.com/a.png"), _deps([provider], uploader))
  provider.generate_from_image.assert_awaited_once()


@pytest.mark.anyio
async def test_multiview_job_missing_view_fails(make_job, uploader) -> None:
  provider = _provider("hunyuan")
  job = make_job(type=JobType.MULTIVIEW, view_images=ViewImages(front="https://e/f.png", left="https://e/l.png", right=None))
  with pytest.raises(InputError, match="front/left/right images are required"):
    await generate_3d(job, _deps([provider], uploader))


@pytest.mark.anyio
async def test_multiview_job_dispatches(make_job, uploader) -> None:
  provider = _provider("hunyuan")
  job = make_job(type=JobType.MULTIVIEW, view_images=ViewImages(front="https://e/f.png", left="https://e/l.png", right="https://e/r.png"))
  await generate_3d(job, _deps([provider], uploader))
  provider.generate_from_multiview.assert_awaited_once()


@pytest.mark.anyio
async def test_job_override_selects_provider(make_job, uploader) -> None:
  hunyuan, meshy = _provider("hunyuan"), _provider("meshy")
  await generate_3d(make_job(provider=ProviderName.MESHY), _deps([hunyuan, meshy], uploader, env_provider="hunyuan"))
  meshy.generate_from_text.assert_awaited_once()
  hunyuan.generate_from_text.assert_not_awaited()


@pytest.mark.anyio
async def test_env_provider_used_without_override(make_job, uploader) -> None:
  hunyuan, meshy = _provider("hunyuan"), _provider("meshy")
  await generate_3d(make_job(), _deps([hunyuan, meshy], uploader, env_provider="meshy"))
  meshy.generate_from_text.assert_awaited_once()


@pytest.mark.anyio
async def test_falls_back_to_placeholder_when_nothing_configured(make_job, uploader) -> None:
  placeholder_result = ProviderResult(asset_id="asset-mock", asset_url="/storage/mock.glb")
  placeholder = AsyncMock(return_value=placeholder_result)
  delay = AsyncMock()
  deps = _deps([_provider("hunyuan", configured=False)], uploader, delay=delay, random=lambda: 0.5, generate_placeholder=placeholder)

  result = await generate_3d(make_job(job_id="job-3"), deps)

  assert result == placeholder_result
  delay.assert_awaited_once_with(2.0)
  placeholder.assert_awaited_once_with("job-3", uploader)


@pytest.mark.anyio
@pytest.mark.parametrize("job_type", [JobType.TEXT, JobType.IMAGE, JobType.MULTIVIEW])
async def test_placeholder_path_never_fails_for_missing_inputs(make_job, uploader, job_type) -> None:
  result = await generate_3d(make_job(job_id="job-4", type=job_type), _deps([], uploader, random=lambda: 0.0))
  assert result.asset_id == "asset-job-4.glb"
  assert result.asset_url == "/storage/asset-job-4.glb"


@pytest.mark.anyio
async def test_provider_errors_propagate_unchanged(make_job, uploader) -> None:
  provider = _provider("meshy")
  error = ProviderError("Meshy API error: 500 - boom")
  provider.generate_from_text.side_effect = error
  with pytest.raises(ProviderError) as excinfo:
    await generate_3d(make_job(), _deps([provider], uploader))
  assert excinfo.value is error
  provider.generate_from_text.assert_awaited_once()
