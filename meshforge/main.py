from __future__ import annotations

from collections.abc import Sequence

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from meshforge import __version__
from meshforge.api.routes import assets, jobs
from meshforge.config import Settings, get_settings
from meshforge.core.exceptions import global_exception_handler, intake_exception_handler, job_not_found_exception_handler, job_validation_exception_handler, request_validation_exception_handler
from meshforge.core.lifespan import lifespan
from meshforge.errors import IntakeError, JobNotFoundError, JobValidationError
from meshforge.providers import ProviderAdapter, build_providers
from meshforge.services.artifacts import ArtifactRegistry, InMemoryKeyValueStore, KeyValueStore
from meshforge.services.history import HistoryStore, InMemoryHistoryStore
from meshforge.services.queue.factory import get_job_queue
from meshforge.services.queue.interface import JobQueue
from meshforge.services.storage_client import ArtifactUploader, build_artifact_uploader


def create_app(
  settings: Settings | None = None,
  *,
  queue: JobQueue | None = None,
  asset_store: KeyValueStore | None = None,
  texture_store: KeyValueStore | None = None,
  history: HistoryStore | None = None,
  uploader: ArtifactUploader | None = None,
  providers: Sequence[ProviderAdapter] | None = None,
  run_embedded_worker: bool | None = None,
) -> FastAPI:
  """Build the API app; collaborators default to the configured implementations."""
  settings = settings or get_settings()
  app = FastAPI(title="meshforge", version=__version__, lifespan=lifespan)

  app.state.settings = settings
  app.state.queue = queue or get_job_queue(settings)
  app.state.artifacts = ArtifactRegistry(asset_store or InMemoryKeyValueStore(), texture_store=texture_store)
  app.state.history = history if history is not None else InMemoryHistoryStore()
  app.state.uploader = uploader or build_artifact_uploader(settings)
  app.state.providers = list(providers) if providers is not None else build_providers()
  app.state.run_embedded_worker = settings.run_embedded_worker if run_embedded_worker is None else run_embedded_worker
  app.state.worker = None

  app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"])

  app.add_exception_handler(Exception, global_exception_handler)
  app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
  app.add_exception_handler(JobValidationError, job_validation_exception_handler)
  app.add_exception_handler(JobNotFoundError, job_not_found_exception_handler)
  app.add_exception_handler(IntakeError, intake_exception_handler)

  @app.get("/health", include_in_schema=False)
  async def health_check() -> dict[str, str]:
    """Return a simple health status."""
    return {"status": "ok"}

  app.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
  app.include_router(assets.router, prefix="/v1/assets", tags=["assets"])
  # Locally stored artifacts are served from the storage directory.
  app.mount("/storage", StaticFiles(directory=settings.storage_dir, check_dir=False), name="storage")
  return app


app = create_app()
