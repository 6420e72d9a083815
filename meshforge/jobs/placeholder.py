"""Deterministic placeholder artifact: a single-cube glTF 2.0 binary."""

from __future__ import annotations

import json
import logging
import struct

from meshforge.jobs.models import AssetFormat, ProviderResult
from meshforge.services.storage_client import ArtifactUploader, content_type_for
from meshforge.utils.ids import asset_id_for

logger = logging.getLogger(__name__)

GLB_MAGIC = 0x46546C67  # "glTF"
GLB_VERSION = 2
CHUNK_TYPE_JSON = 0x4E4F534A
CHUNK_TYPE_BIN = 0x004E4942

# Front face then back face.
CUBE_VERTICES: tuple[float, ...] = (
  -1, -1, 1, 1, -1, 1, 1, 1, 1, -1, 1, 1,
  -1, -1, -1, -1, 1, -1, 1, 1, -1, 1, -1, -1,
)

# Front, top, back, bottom, right, left.
CUBE_INDICES: tuple[int, ...] = (
  0, 1, 2, 0, 2, 3,
  3, 2, 6, 3, 6, 7,
  7, 6, 5, 7, 5, 4,
  4, 5, 1, 4, 1, 0,
  1, 5, 6, 1, 6, 2,
  4, 0, 3, 4, 3, 7,
)

_GLTF_DOCUMENT = {
  "asset": {"version": "2.0", "generator": "AI-3D-Platform"},
  "scene": 0,
  "scenes": [{"nodes": [0]}],
  "nodes": [{"mesh": 0}],
  "meshes": [{"primitives": [{"attributes": {"POSITION": 0}, "indices": 1, "mode": 4}]}],
  "accessors": [
    {"bufferView": 0, "componentType": 5126, "count": 8, "type": "VEC3", "max": [1, 1, 1], "min": [-1, -1, -1]},
    {"bufferView": 1, "componentType": 5123, "count": 36, "type": "SCALAR"},
  ],
  "bufferViews": [
    {"buffer": 0, "byteOffset": 0, "byteLength": 96},
    {"buffer": 0, "byteOffset": 96, "byteLength": 72},
  ],
  "buffers": [{"byteLength": 168}],
}


def _pad(data: bytes, fill: bytes) -> bytes:
  return data + fill * ((4 - len(data) % 4) % 4)


def build_placeholder_glb() -> bytes:
  """Return the cube GLB; the output never varies between calls."""
  json_chunk = _pad(json.dumps(_GLTF_DOCUMENT, separators=(",", ":")).encode("utf-8"), b" ")
  bin_chunk = _pad(struct.pack(f"<{len(CUBE_VERTICES)}f", *CUBE_VERTICES) + struct.pack(f"<{len(CUBE_INDICES)}H", *CUBE_INDICES), b"\x00")

  total_length = 12 + 8 + len(json_chunk) + 8 + len(bin_chunk)
  return b"".join(
    [
      struct.pack("<III", GLB_MAGIC, GLB_VERSION, total_length),
      struct.pack("<II", len(json_chunk), CHUNK_TYPE_JSON),
      json_chunk,
      struct.pack("<II", len(bin_chunk), CHUNK_TYPE_BIN),
      bin_chunk,
    ]
  )


async def generate_placeholder(job_id: str, uploader: ArtifactUploader) -> ProviderResult:
  """Upload the placeholder cube for a job through the regular storage path."""
  asset_id = asset_id_for(job_id, AssetFormat.GLB.value)
  asset_url = await uploader.upload(build_placeholder_glb(), asset_id, content_type_for(AssetFormat.GLB.value))
  logger.info("[Placeholder][%s] uploaded %s", job_id, asset_url)
  return ProviderResult(asset_id=asset_id, asset_url=asset_url, format=AssetFormat.GLB)
