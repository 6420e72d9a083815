import logging
import time
from collections.abc import Callable
from typing import Any

from meshforge.api.models import CreateJobResponse, JobStatusResponse
from meshforge.errors import IntakeError, JobNotFoundError
from meshforge.jobs.models import ClientStatus, QueueState
from meshforge.services.history import HistoryStore, new_history_entry
from meshforge.services.queue.interface import EnqueueOptions, JobQueue
from meshforge.services.request_validation import build_job_record, validate_create_request
from meshforge.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

_DEFAULT_FAILURE_REASON = "Job failed"

_STATUS_BY_STATE = {
  QueueState.WAITING: ClientStatus.QUEUED,
  QueueState.DELAYED: ClientStatus.QUEUED,
  QueueState.ACTIVE: ClientStatus.RUNNING,
  QueueState.COMPLETED: ClientStatus.SUCCEEDED,
  QueueState.FAILED: ClientStatus.FAILED,
}


def _now_ms() -> int:
  return int(time.time() * 1000)


def project_status(state: QueueState | str | None) -> ClientStatus:
  """Map a queue-native state to the client vocabulary; unknown states read as queued."""
  try:
    native = QueueState(state)
  except ValueError:
    return ClientStatus.QUEUED
  return _STATUS_BY_STATE.get(native, ClientStatus.QUEUED)


async def create_job(
  payload: Any,
  *,
  queue: JobQueue,
  history: HistoryStore | None = None,
  options: EnqueueOptions | None = None,
  id_factory: Callable[[], str] = generate_job_id,
  clock: Callable[[], int] = _now_ms,
) -> CreateJobResponse:
  """Validate, enqueue and record a new generation job."""
  request = validate_create_request(payload)
  job_id = id_factory()
  record = build_job_record(request, job_id=job_id, created_at=clock())
  options = options or EnqueueOptions()

  try:
    await queue.add(job_id, record.to_payload(), options)
  except Exception as exc:
    logger.error("Failed to enqueue job %s: %s", job_id, exc, exc_info=True)
    raise IntakeError("Failed to create job") from exc

  if history is not None:
    try:
      await history.save(new_history_entry(job_id, record.type, record.prompt, created_at=record.created_at))
    except Exception as exc:
      # The job is already queued; a history miss must not fail the request.
      logger.warning("Failed to record history for job %s: %s", job_id, exc)

  logger.info("Job %s queued (type=%s, format=%s, provider=%s)", job_id, record.type.value, record.format.value, record.provider.value if record.provider else "auto")
  return CreateJobResponse(job_id=job_id, status=ClientStatus.QUEUED)


async def get_job_status(job_id: str, *, queue: JobQueue) -> JobStatusResponse:
  """Project queue-native state for a job into the client status view."""
  job = await queue.get_job(job_id)
  if job is None:
    raise JobNotFoundError(job_id)

  status = project_status(job.state)
  asset_id = None
  error = None
  if status == ClientStatus.SUCCEEDED and isinstance(job.return_value, dict):
    asset_id = job.return_value.get("assetId")
  elif status == ClientStatus.FAILED:
    error = job.failed_reason or _DEFAULT_FAILURE_REASON

  return JobStatusResponse(job_id=job_id, status=status, asset_id=asset_id, error=error)
