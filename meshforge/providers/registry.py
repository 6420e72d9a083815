"""Ordered provider registry and selection with fallback."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from meshforge.providers.base import ProviderAdapter
from meshforge.providers.http import ClientFactory, default_client_factory
from meshforge.providers.hunyuan import HunyuanProvider
from meshforge.providers.meshy import MeshyProvider

logger = logging.getLogger(__name__)


def build_providers(*, client_factory: ClientFactory = default_client_factory) -> list[ProviderAdapter]:
  """Return the adapters in auto-selection priority order."""
  return [HunyuanProvider(client_factory=client_factory), MeshyProvider(client_factory=client_factory)]


def select_provider(adapters: Sequence[ProviderAdapter], requested_name: str | None = None, env_default_name: str | None = None) -> ProviderAdapter | None:
  """Pick the adapter for a job, or None when the placeholder should run.

  A requested (or environment default) name wins when that adapter is
  configured. Unknown or unconfigured names fall back to the first configured
  adapter in registration order. Configuration is re-checked on every call.
  """
  provider_name = (requested_name or env_default_name or "").strip().lower()

  if provider_name:
    selected = next((adapter for adapter in adapters if adapter.name.lower() == provider_name), None)
    if selected is None:
      logger.warning('[Provider] Unknown provider "%s", falling back to auto selection', provider_name)
    elif not selected.is_configured():
      logger.warning('[Provider] "%s" is not configured, falling back to auto selection', provider_name)
    else:
      return selected

  return next((adapter for adapter in adapters if adapter.is_configured()), None)
