"""Shared FastAPI dependencies resolving collaborators from app state."""

from __future__ import annotations

from fastapi import Request

from meshforge.config import Settings
from meshforge.services.artifacts import ArtifactRegistry
from meshforge.services.history import HistoryStore
from meshforge.services.queue.interface import JobQueue
from meshforge.services.storage_client import ArtifactUploader


def get_queue(request: Request) -> JobQueue:
  return request.app.state.queue


def get_history(request: Request) -> HistoryStore:
  return request.app.state.history


def get_artifacts(request: Request) -> ArtifactRegistry:
  return request.app.state.artifacts


def get_uploader(request: Request) -> ArtifactUploader:
  return request.app.state.uploader


def get_app_settings(request: Request) -> Settings:
  return request.app.state.settings
