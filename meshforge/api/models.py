from __future__ import annotations

from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from meshforge.jobs.models import AssetFormat, ClientStatus, JobType, ProviderName, SkeletonPreset, TextureStyle

MAX_PROMPT_LENGTH = 2000


def _require_url(value: str | None) -> str | None:
  """Accept absolute URLs only; the original string is kept as-is."""
  if value is None:
    return value
  parsed = urlparse(value)
  if not parsed.scheme or not parsed.netloc:
    raise ValueError("Invalid url")
  return value


class ViewImagesModel(BaseModel):
  """Front/left/right reference views; presence is checked per job type."""

  front: StrictStr | None = None
  left: StrictStr | None = None
  right: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")

  @field_validator("front", "left", "right")
  @classmethod
  def validate_view_url(cls, value: str | None) -> str | None:
    return _require_url(value)


class TextureOptionsModel(BaseModel):
  resolution: Literal[512, 1024, 2048]
  style: TextureStyle
  model_config = ConfigDict(extra="forbid")


class SkeletonOptionsModel(BaseModel):
  preset: SkeletonPreset
  model_config = ConfigDict(extra="forbid")


class CreateJobRequest(BaseModel):
  """Request payload for submitting a 3D generation job."""

  type: JobType = Field(description="Input modality: text, image or multiview.")
  prompt: StrictStr = Field(min_length=1, max_length=MAX_PROMPT_LENGTH, description="Description of the asset to generate.", examples=["a low-poly red fox"])
  image_url: StrictStr | None = Field(default=None, alias="imageUrl", description="Reference image (image jobs only).")
  view_images: ViewImagesModel | None = Field(default=None, alias="viewImages", description="Front/left/right views (multiview jobs only).")
  provider: ProviderName | None = Field(default=None, description="Optional provider override.")
  format: AssetFormat | None = Field(default=None, description="Output format; defaults to glb.")
  texture_options: TextureOptionsModel | None = Field(default=None, alias="textureOptions")
  skeleton_options: SkeletonOptionsModel | None = Field(default=None, alias="skeletonOptions", description="Rigging preset; requires format=fbx.")
  model_config = ConfigDict(extra="forbid")

  @field_validator("image_url")
  @classmethod
  def validate_image_url(cls, value: str | None) -> str | None:
    return _require_url(value)


class CreateJobResponse(BaseModel):
  job_id: str = Field(alias="jobId")
  status: ClientStatus
  model_config = ConfigDict(populate_by_name=True)


class JobStatusResponse(BaseModel):
  """Client-facing job status projected from queue state."""

  job_id: str = Field(alias="jobId")
  status: ClientStatus
  asset_id: str | None = Field(default=None, alias="assetId")
  error: str | None = None
  model_config = ConfigDict(populate_by_name=True)


class AssetResponse(BaseModel):
  download_url: str = Field(alias="downloadUrl")
  format: AssetFormat
  model_config = ConfigDict(populate_by_name=True)


class HistoryRecord(BaseModel):
  job_id: str = Field(alias="jobId")
  type: JobType
  prompt: str
  status: ClientStatus
  created_at: int = Field(alias="createdAt")
  asset_id: str | None = Field(default=None, alias="assetId")
  model_config = ConfigDict(populate_by_name=True)


class Pagination(BaseModel):
  page: int
  limit: int
  total: int
  total_pages: int = Field(alias="totalPages")
  model_config = ConfigDict(populate_by_name=True)


class HistoryResponse(BaseModel):
  """Paginated job history."""

  data: list[HistoryRecord]
  pagination: Pagination


class ErrorResponse(BaseModel):
  error: str
  details: list[dict[str, Any]] | None = None
