"""Bounded poll loop for provider tasks."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from meshforge.errors import ProviderTimeoutError

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_SECONDS = 3.0
DEFAULT_MAX_POLL_ATTEMPTS = 200  # ~10 minutes


async def poll_until(
  fetch: Callable[[], Awaitable[T]],
  is_terminal: Callable[[T], bool],
  *,
  interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
  max_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
  sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  timeout_message: str = "Polling timed out",
) -> T:
  """Call ``fetch`` until ``is_terminal`` holds, sleeping between attempts.

  Raises ProviderTimeoutError once ``max_attempts`` fetches were non-terminal.
  The wait is a plain awaitable, so cancelling the surrounding task stops the
  loop mid-sleep.
  """
  for attempt in range(1, max_attempts + 1):
    status = await fetch()
    if is_terminal(status):
      return status
    if attempt < max_attempts:
      await sleep(interval_seconds)

  raise ProviderTimeoutError(f"{timeout_message} after {max_attempts} attempts")
