import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, RedirectResponse

from meshforge.api.deps import get_artifacts, get_uploader
from meshforge.api.models import AssetResponse, ErrorResponse
from meshforge.jobs.models import AssetFormat
from meshforge.services.artifacts import ArtifactRegistry
from meshforge.services.storage_client import ArtifactUploader

router = APIRouter()
logger = logging.getLogger("meshforge.api.routes.assets")

_ASSET_NOT_FOUND = {"error": "Asset not found"}


def _format_for(asset_id: str) -> AssetFormat:
  """Infer the model format from the asset id extension."""
  extension = asset_id.rpartition(".")[2].lower()
  return AssetFormat.FBX if extension == AssetFormat.FBX.value else AssetFormat.GLB


@router.get("/{asset_id}", response_model=AssetResponse, responses={404: {"model": ErrorResponse}})
async def get_asset(  # noqa: B008
  asset_id: str,
  artifacts: ArtifactRegistry = Depends(get_artifacts),  # noqa: B008
  uploader: ArtifactUploader = Depends(get_uploader),  # noqa: B008
) -> Any:
  """Return a download URL for a generated asset."""
  asset_url = await artifacts.get_asset_url(asset_id)
  if not asset_url:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_ASSET_NOT_FOUND)
  download_url = await uploader.presign_download(asset_url)
  return AssetResponse(download_url=download_url, format=_format_for(asset_id))


@router.get("/{asset_id}/preview")
async def preview_asset(  # noqa: B008
  asset_id: str,
  artifacts: ArtifactRegistry = Depends(get_artifacts),  # noqa: B008
  uploader: ArtifactUploader = Depends(get_uploader),  # noqa: B008
) -> Any:
  """Redirect to the asset's (signed) URL."""
  asset_url = await artifacts.get_asset_url(asset_id)
  if not asset_url:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_ASSET_NOT_FOUND)
  return RedirectResponse(await uploader.presign_download(asset_url), status_code=status.HTTP_302_FOUND)


@router.get("/{asset_id}/textures")
async def get_asset_textures(asset_id: str, artifacts: ArtifactRegistry = Depends(get_artifacts)) -> Any:  # noqa: B008
  """Return the texture map URLs recorded for an asset."""
  textures = await artifacts.get_textures(asset_id)
  if textures is None:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Textures not found"})
  return textures
