"""Error taxonomy shared by intake, orchestration and provider adapters."""

from __future__ import annotations

from typing import Any


class MeshforgeError(Exception):
  """Base class for service errors."""


class JobValidationError(MeshforgeError):
  """Raised when a create-job payload violates one or more constraints."""

  def __init__(self, violations: list[dict[str, Any]]) -> None:
    self.violations = violations
    summary = "; ".join(f"{item.get('field')}: {item.get('message')}" for item in violations)
    super().__init__(f"Validation error: {summary}")


class IntakeError(MeshforgeError):
  """Raised when a validated job cannot be handed to the queue."""


class InputError(MeshforgeError):
  """Raised when a job lacks an input required by its declared type."""


class ProviderError(MeshforgeError):
  """Raised when an external provider call fails."""

  def __init__(self, message: str, *, code: str | None = None) -> None:
    self.code = code
    super().__init__(message)


class ProviderTimeoutError(ProviderError):
  """Raised when a provider task does not finish within the polling budget."""


class JobNotFoundError(MeshforgeError):
  """Raised when a status query references a job unknown to the queue."""

  def __init__(self, job_id: str) -> None:
    self.job_id = job_id
    super().__init__(f"Job not found: {job_id}")
