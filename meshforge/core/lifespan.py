import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from meshforge.core.logging import _initialize_logging
from meshforge.jobs.worker import build_job_worker
from meshforge.services.queue.local import LocalJobQueue


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging and run the embedded worker for the in-process queue."""
  settings = app.state.settings
  logger = logging.getLogger("meshforge.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  worker = None
  queue = app.state.queue
  # Jobs on the in-process queue are only reachable from this process.
  if app.state.run_embedded_worker and isinstance(queue, LocalJobQueue):
    worker = build_job_worker(settings, queue=queue, registry=app.state.artifacts, uploader=app.state.uploader, providers=app.state.providers, history=app.state.history)
    worker.start()
    app.state.worker = worker

  try:
    yield
  finally:
    if worker is not None:
      await worker.stop()
    await queue.close()
    logger.info("Shutdown complete.")
