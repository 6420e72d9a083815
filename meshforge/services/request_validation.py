from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from meshforge.api.models import CreateJobRequest
from meshforge.errors import JobValidationError
from meshforge.jobs.models import AssetFormat, JobRecord, JobType, ProviderName, SkeletonOptions, TextureOptions, ViewImages

_VIEWS = ("front", "left", "right")


def _present(payload: dict[str, Any], key: str) -> bool:
  return payload.get(key) is not None


def _field_violations(exc: ValidationError) -> list[dict[str, str]]:
  """Flatten pydantic errors into ``{field, message}`` pairs using wire names."""
  violations = []
  for error in exc.errors():
    field = ".".join(str(part) for part in error.get("loc", ())) or "body"
    violations.append({"field": field, "message": error.get("msg", "Invalid value")})
  return violations


def _cross_field_violations(payload: dict[str, Any]) -> list[dict[str, str]]:
  """Rules that depend on more than one field, evaluated on the raw payload."""
  violations: list[dict[str, str]] = []
  job_type = payload.get("type")

  if job_type == JobType.IMAGE.value:
    if not _present(payload, "imageUrl"):
      violations.append({"field": "imageUrl", "message": "imageUrl is required when type is image"})
    if _present(payload, "viewImages"):
      violations.append({"field": "viewImages", "message": "viewImages is only allowed when type is multiview"})
  elif job_type == JobType.TEXT.value:
    if _present(payload, "imageUrl"):
      violations.append({"field": "imageUrl", "message": "imageUrl is only allowed when type is image"})
    if _present(payload, "viewImages"):
      violations.append({"field": "viewImages", "message": "viewImages is only allowed when type is multiview"})
  elif job_type == JobType.MULTIVIEW.value:
    if _present(payload, "imageUrl"):
      violations.append({"field": "imageUrl", "message": "imageUrl is only allowed when type is image"})
    views = payload.get("viewImages")
    if not isinstance(views, dict):
      violations.append({"field": "viewImages", "message": "viewImages is required when type is multiview"})
    else:
      for view in _VIEWS:
        if not views.get(view):
          violations.append({"field": f"viewImages.{view}", "message": f"{view} image is required for multiview jobs"})

  if _present(payload, "skeletonOptions") and payload.get("format") != AssetFormat.FBX.value:
    violations.append({"field": "skeletonOptions", "message": "skeletonOptions requires format fbx"})

  return violations


def validate_create_request(payload: Any) -> CreateJobRequest:
  """Validate a create-job payload, reporting every violation at once."""
  if not isinstance(payload, dict):
    raise JobValidationError([{"field": "body", "message": "Request body must be a JSON object"}])

  violations: list[dict[str, str]] = []
  request: CreateJobRequest | None = None
  try:
    request = CreateJobRequest.model_validate(payload)
  except ValidationError as exc:
    violations.extend(_field_violations(exc))
  violations.extend(_cross_field_violations(payload))

  if violations or request is None:
    raise JobValidationError(violations)
  return request


def build_job_record(request: CreateJobRequest, *, job_id: str, created_at: int) -> JobRecord:
  """Normalize a validated request into the immutable queue record."""
  views = request.view_images
  texture = request.texture_options
  skeleton = request.skeleton_options
  return JobRecord(
    job_id=job_id,
    type=request.type,
    prompt=request.prompt,
    created_at=created_at,
    image_url=request.image_url,
    view_images=ViewImages(front=views.front, left=views.left, right=views.right) if views else None,
    provider=ProviderName(request.provider) if request.provider else None,
    format=request.format or AssetFormat.GLB,
    texture_options=TextureOptions(resolution=texture.resolution, style=texture.style) if texture else None,
    skeleton_options=SkeletonOptions(preset=skeleton.preset) if skeleton else None,
  )
