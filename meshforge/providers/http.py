"""Outbound HTTP helpers shared by provider adapters."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from meshforge.errors import ProviderError

logger = logging.getLogger(__name__)

# Ceiling for any single provider call, including large model downloads.
REQUEST_TIMEOUT_SECONDS = 600.0
TRANSIENT_MAX_ATTEMPTS = 3
TRANSIENT_BACKOFF_SECONDS = 0.5

_TRANSIENT_ERRORS: tuple[type[Exception], ...] = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)

ClientFactory = Callable[[], httpx.AsyncClient]
Sleep = Callable[[float], Awaitable[None]]


def default_client_factory() -> httpx.AsyncClient:
  """Build the client used for provider traffic."""
  # Provider endpoints are public APIs; never pick up local proxy settings by accident.
  return httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS, follow_redirects=True, trust_env=False)


def is_transient(exc: BaseException) -> bool:
  """Return True for transport failures worth a local retry (timeouts, resets, DNS)."""
  return isinstance(exc, _TRANSIENT_ERRORS)


async def request_with_retry(
  client_factory: ClientFactory,
  method: str,
  url: str,
  *,
  sleep: Sleep = asyncio.sleep,
  max_attempts: int = TRANSIENT_MAX_ATTEMPTS,
  **kwargs: Any,
) -> httpx.Response:
  """Send one request, retrying only transient transport errors.

  Delays grow linearly (0.5s, 1.0s). HTTP error statuses are returned to the
  caller untouched; deciding whether a status is fatal is the adapter's job.
  """
  for attempt in range(1, max_attempts + 1):
    try:
      async with client_factory() as client:
        return await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
      if not is_transient(exc) or attempt == max_attempts:
        raise ProviderError(f"{method} {url} failed: {type(exc).__name__}: {exc}") from exc
      delay = TRANSIENT_BACKOFF_SECONDS * attempt
      logger.warning("Transient error on %s %s (attempt %d/%d): %s. Retrying in %.1fs...", method, url, attempt, max_attempts, exc, delay)
      await sleep(delay)

  raise ProviderError(f"{method} {url} failed after {max_attempts} attempts")


async def download_file(client_factory: ClientFactory, url: str, *, sleep: Sleep = asyncio.sleep) -> bytes:
  """Download a file body, following redirects; HTTP errors are fatal."""
  response = await request_with_retry(client_factory, "GET", url, sleep=sleep)
  if response.status_code >= 400:
    raise ProviderError(f"Failed to download file: HTTP {response.status_code}", code=str(response.status_code))
  return response.content
