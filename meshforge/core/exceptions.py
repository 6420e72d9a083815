import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from meshforge.errors import IntakeError, JobNotFoundError, JobValidationError

logger = logging.getLogger("uvicorn.error")


def _error_payload(error: str, *, details: Any = None) -> dict[str, Any]:
  payload: dict[str, Any] = {"error": error}
  if details is not None:
    payload["details"] = details
  return payload


def _sanitize_validation_errors(errors: Any) -> list[dict[str, Any]]:
  """Return pydantic errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    field = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body"
    sanitized.append({"field": field, "message": str(error.get("msg", "Invalid value"))})
  return sanitized


async def job_validation_exception_handler(request: Request, exc: JobValidationError) -> JSONResponse:
  """Report every create-job violation as a 400."""
  logger.info("Job validation failed path=%s violations=%d", request.url.path, len(exc.violations))
  return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_payload("Validation error", details=exc.violations))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Malformed bodies and query strings use the same 400 shape as job validation."""
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed path=%s method=%s errors=%s", request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_payload("Validation error", details=sanitized_errors))


async def job_not_found_exception_handler(request: Request, exc: JobNotFoundError) -> JSONResponse:
  return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_payload("Job not found"))


async def intake_exception_handler(request: Request, exc: IntakeError) -> JSONResponse:
  logger.error("Intake failure path=%s: %s", request.url.path, exc)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload(str(exc) or "Failed to create job"))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger.error("Global exception path=%s error_type=%s", request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal server error"))
