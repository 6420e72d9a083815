"""Artifact registry: asset id -> stored URL, plus optional texture maps."""

from __future__ import annotations

import json
import logging
from typing import Protocol

from meshforge.jobs.models import ProviderResult

logger = logging.getLogger(__name__)

ASSET_PREFIX = "asset:"
TEXTURES_PREFIX = "textures:"


class KeyValueStore(Protocol):
  """Minimal string key-value boundary (Redis-like)."""

  async def get(self, key: str) -> str | None:
    ...

  async def set(self, key: str, value: str) -> None:
    ...


class InMemoryKeyValueStore(KeyValueStore):
  """Process-local store used when no external key-value service is wired in."""

  def __init__(self, seed: dict[str, str] | None = None) -> None:
    self._data: dict[str, str] = dict(seed or {})

  async def get(self, key: str) -> str | None:
    return self._data.get(key)

  async def set(self, key: str, value: str) -> None:
    self._data[key] = value


class ArtifactRegistry:
  """Records where each generated asset lives; written once per successful job."""

  def __init__(self, store: KeyValueStore, *, texture_store: KeyValueStore | None = None) -> None:
    self._store = store
    self._texture_store = texture_store or store

  async def register(self, result: ProviderResult) -> None:
    await self._store.set(f"{ASSET_PREFIX}{result.asset_id}", result.asset_url)
    if result.texture_map_ids:
      await self._texture_store.set(f"{TEXTURES_PREFIX}{result.asset_id}", json.dumps(result.texture_map_ids))

  async def get_asset_url(self, asset_id: str) -> str | None:
    return await self._store.get(f"{ASSET_PREFIX}{asset_id}")

  async def get_textures(self, asset_id: str) -> dict[str, str] | None:
    """Return the texture map for an asset; unreadable entries count as missing."""
    raw = await self._texture_store.get(f"{TEXTURES_PREFIX}{asset_id}")
    if not raw:
      return None
    try:
      textures = json.loads(raw)
    except json.JSONDecodeError:
      logger.warning("Ignoring malformed texture map for asset %s", asset_id)
      return None
    if not isinstance(textures, dict):
      return None
    return textures
