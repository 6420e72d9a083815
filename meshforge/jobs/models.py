"""Domain models for asynchronous 3D generation jobs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class JobType(str, Enum):
  """Input modality of a generation job."""

  TEXT = "text"
  IMAGE = "image"
  MULTIVIEW = "multiview"


class AssetFormat(str, Enum):
  """Model file formats a job may request."""

  GLB = "glb"
  FBX = "fbx"


class ProviderName(str, Enum):
  """Known external generation providers."""

  HUNYUAN = "hunyuan"
  MESHY = "meshy"


class TextureStyle(str, Enum):
  """Texture art styles accepted at intake."""

  PHOTOREALISTIC = "photorealistic"
  CARTOON = "cartoon"
  STYLIZED = "stylized"
  FLAT = "flat"


class SkeletonPreset(str, Enum):
  """Rigging presets available for FBX output."""

  NONE = "none"
  HUMANOID = "humanoid"
  QUADRUPED = "quadruped"


class ClientStatus(str, Enum):
  """Status vocabulary exposed to API consumers."""

  QUEUED = "queued"
  RUNNING = "running"
  SUCCEEDED = "succeeded"
  FAILED = "failed"


class QueueState(str, Enum):
  """Queue-owned job states; read by the core, never written."""

  WAITING = "waiting"
  DELAYED = "delayed"
  ACTIVE = "active"
  COMPLETED = "completed"
  FAILED = "failed"
  UNKNOWN = "unknown"


@dataclass(frozen=True)
class ViewImages:
  """Calibrated front/left/right views for multiview generation."""

  front: str | None
  left: str | None
  right: str | None

  def is_complete(self) -> bool:
    """Return True when every view has a URL."""
    return bool(self.front and self.left and self.right)

  def to_payload(self) -> dict[str, Any]:
    return {"front": self.front, "left": self.left, "right": self.right}


@dataclass(frozen=True)
class TextureOptions:
  """Requested texture resolution and style."""

  resolution: int
  style: TextureStyle

  def to_payload(self) -> dict[str, Any]:
    return {"resolution": self.resolution, "style": self.style.value}


@dataclass(frozen=True)
class SkeletonOptions:
  """Requested rigging preset (FBX only)."""

  preset: SkeletonPreset

  def to_payload(self) -> dict[str, Any]:
    return {"preset": self.preset.value}


@dataclass(frozen=True)
class JobRecord:
  """Immutable job description created by intake and consumed by the worker."""

  job_id: str
  type: JobType
  prompt: str
  created_at: int
  image_url: str | None = None
  view_images: ViewImages | None = None
  provider: ProviderName | None = None
  format: AssetFormat = AssetFormat.GLB
  texture_options: TextureOptions | None = None
  skeleton_options: SkeletonOptions | None = None

  def to_payload(self) -> dict[str, Any]:
    """Serialize into the JSON-safe shape stored on the queue."""
    payload: dict[str, Any] = {"id": self.job_id, "type": self.type.value, "prompt": self.prompt, "format": self.format.value, "createdAt": self.created_at}
    if self.image_url is not None:
      payload["imageUrl"] = self.image_url
    if self.view_images is not None:
      payload["viewImages"] = self.view_images.to_payload()
    if self.provider is not None:
      payload["provider"] = self.provider.value
    if self.texture_options is not None:
      payload["textureOptions"] = self.texture_options.to_payload()
    if self.skeleton_options is not None:
      payload["skeletonOptions"] = self.skeleton_options.to_payload()
    return payload

  @classmethod
  def from_payload(cls, payload: dict[str, Any]) -> JobRecord:
    """Rebuild a record from its queue payload; missing optional fields stay None."""
    views = payload.get("viewImages")
    view_images = None
    if isinstance(views, dict):
      view_images = ViewImages(front=views.get("front"), left=views.get("left"), right=views.get("right"))

    texture = payload.get("textureOptions")
    texture_options = None
    if isinstance(texture, dict):
      texture_options = TextureOptions(resolution=int(texture["resolution"]), style=TextureStyle(texture["style"]))

    skeleton = payload.get("skeletonOptions")
    skeleton_options = SkeletonOptions(preset=SkeletonPreset(skeleton["preset"])) if isinstance(skeleton, dict) else None

    provider = payload.get("provider")
    return cls(
      job_id=str(payload["id"]),
      type=JobType(payload["type"]),
      prompt=str(payload.get("prompt") or ""),
      created_at=int(payload.get("createdAt") or 0),
      image_url=payload.get("imageUrl"),
      view_images=view_images,
      provider=ProviderName(provider) if provider else None,
      format=AssetFormat(payload.get("format") or AssetFormat.GLB.value),
      texture_options=texture_options,
      skeleton_options=skeleton_options,
    )


@dataclass(frozen=True)
class ProviderResult:
  """Artifact produced for a job by a provider or the placeholder generator."""

  asset_id: str
  asset_url: str
  texture_map_ids: dict[str, str] | None = None
  format: AssetFormat | None = None

  def to_payload(self) -> dict[str, Any]:
    """Serialize into the queue return-value shape."""
    payload: dict[str, Any] = {"assetId": self.asset_id, "assetUrl": self.asset_url}
    if self.texture_map_ids:
      payload["textureMapIds"] = dict(self.texture_map_ids)
    if self.format is not None:
      payload["format"] = self.format.value
    return payload
