"""Ingestion progress tracking."""

from paperlens.pipeline.progress_tracker import ProgressTracker

__all__ = ["ProgressTracker"]
