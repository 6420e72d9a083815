"""Asynchronous 3D asset generation service."""

__version__ = "0.1.0"
