"""Lightweight .env loader for local configuration."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def default_env_path() -> Path:
  """Return the default .env path at the repo root."""

  return Path(__file__).resolve().parents[2] / ".env"


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Load key=value pairs from a .env file into the process environment."""

  if not path.is_file():
    return

  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    if line.startswith("export "):
      line = line[len("export ") :].lstrip()
    if "=" not in line:
      continue
    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if not key:
      continue
    if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
      value = value[1:-1]
    if not override and key in os.environ:
      continue
    os.environ[key] = value


def env_str(name: str, default: str | None = None) -> str | None:
  """Read an environment variable, treating blank values as unset."""
  raw = os.getenv(name)
  if raw is None or raw.strip() == "":
    return default
  return raw.strip()


def env_int(name: str, default: int | None = None) -> int | None:
  """Read an integer environment variable, falling back to the default when blank or malformed."""
  raw = env_str(name)
  if raw is None:
    return default
  try:
    return int(raw)
  except ValueError:
    logger.warning("Ignoring invalid integer for %s: %r", name, raw)
    return default


def env_flag(name: str) -> bool:
  """Read a boolean-ish environment variable; only explicit truthy strings count."""
  raw = env_str(name)
  if raw is None:
    return False
  return raw.lower() in {"1", "true", "yes", "on"}
