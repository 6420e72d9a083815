import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from meshforge.api.deps import get_app_settings, get_history, get_queue
from meshforge.api.models import CreateJobResponse, ErrorResponse, HistoryResponse, JobStatusResponse
from meshforge.config import Settings
from meshforge.jobs.models import ClientStatus, JobType
from meshforge.services import jobs as job_service
from meshforge.services.history import HistoryStore, list_history
from meshforge.services.queue.interface import EnqueueOptions, JobQueue

router = APIRouter()
logger = logging.getLogger("meshforge.api.routes.jobs")


@router.post("", response_model=CreateJobResponse, status_code=status.HTTP_201_CREATED, responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def create_job(  # noqa: B008
  payload: Any = Body(...),  # noqa: B008
  queue: JobQueue = Depends(get_queue),  # noqa: B008
  history: HistoryStore = Depends(get_history),  # noqa: B008
  settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> CreateJobResponse:
  """Validate and enqueue a 3D generation job."""
  options = EnqueueOptions(attempts=settings.job_attempts, backoff_seconds=settings.job_backoff_seconds)
  return await job_service.create_job(payload, queue=queue, history=history, options=options)


@router.get("", response_model=HistoryResponse)
async def list_jobs(  # noqa: B008
  page: int = Query(1, ge=1),
  limit: int = Query(20, ge=1, le=100),
  job_type: JobType | None = Query(None, alias="type"),
  job_status: ClientStatus | None = Query(None, alias="status"),
  history: HistoryStore = Depends(get_history),  # noqa: B008
) -> dict[str, Any]:
  """Return job history, newest first."""
  return await list_history(history, page=page, limit=limit, job_type=job_type, status=job_status)


@router.get("/{job_id}", response_model=JobStatusResponse, responses={404: {"model": ErrorResponse}})
async def get_job_status(job_id: str, queue: JobQueue = Depends(get_queue)) -> JobStatusResponse:  # noqa: B008
  """Project the queue state of a job for clients."""
  return await job_service.get_job_status(job_id, queue=queue)
