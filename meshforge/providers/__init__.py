"""Provider adapters for external 3D generation services."""

from meshforge.providers.base import ProviderAdapter, ProviderContext, ResultFile, pick_result_file
from meshforge.providers.hunyuan import HunyuanProvider
from meshforge.providers.meshy import MeshyProvider
from meshforge.providers.registry import build_providers, select_provider

__all__ = [
  "HunyuanProvider",
  "MeshyProvider",
  "ProviderAdapter",
  "ProviderContext",
  "ResultFile",
  "build_providers",
  "pick_result_file",
  "select_provider",
]
