"""Render job queue."""

from .queue import JobQueue, RenderRunner

__all__ = ["JobQueue", "RenderRunner"]
