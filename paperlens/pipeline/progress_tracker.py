"""Ingestion progress tracking with callback-based listener notification.

Tracks ``{phase, fraction}`` for each document being ingested and
broadcasts updates to registered listener callbacks.  Listeners are keyed
by document id so several documents (e.g. tabs) can ingest without
cross-talk.

Progress is two-phase and monotonic:

    EXTRACTING  0.0 ──► 0.5
    EMBEDDING   0.5 ──► 1.0
    COMPLETE          1.0

An update that would move the fraction backwards is clamped to the last
reported value, so listeners (progress bars) never jump back.
:meth:`ProgressTracker.start` resets a document to 0.0 for a fresh
ingestion run.

Listener errors are caught and logged so one broken listener cannot stall
ingestion or starve other listeners.  Both sync and async callbacks are
supported.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from paperlens.models.document import IngestionPhase, IngestionProgress
from paperlens.utils.logging import get_logger

# Called with (document_id, progress); may return an awaitable.
ProgressListener = Callable[[str, IngestionProgress], object]

EXTRACTION_SHARE = 0.5


class ProgressTracker:
    """Tracks and broadcasts ingestion progress via callbacks."""

    def __init__(self) -> None:
        self._statuses: dict[str, IngestionProgress] = {}
        self._listeners: dict[str, list[ProgressListener]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self, document_id: str) -> None:
        """Reset *document_id* to the beginning of a new ingestion run."""
        self._statuses.pop(document_id, None)
        await self.update(document_id, IngestionPhase.EXTRACTING, 0.0)

    async def update(self, document_id: str, phase: IngestionPhase, fraction: float) -> None:
        """Record an overall-fraction update and notify listeners.

        Parameters
        ----------
        document_id:
            The document being ingested.
        phase:
            The current ingestion phase.
        fraction:
            Overall completion in ``[0.0, 1.0]`` (not per-phase).
        """
        fraction = max(0.0, min(1.0, fraction))
        previous = self._statuses.get(document_id)
        if previous is not None and fraction < previous.fraction:
            fraction = previous.fraction

        progress = IngestionProgress(phase=phase, fraction=fraction)
        self._statuses[document_id] = progress

        self._logger.debug(
            "ingestion_progress",
            document_id=document_id,
            phase=phase.value,
            fraction=round(fraction, 3),
        )
        await self._notify_listeners(document_id, progress)

    async def extraction_progress(self, document_id: str, done: int, total: int) -> None:
        """Report *done* of *total* pages chunked (0.0-0.5)."""
        share = done / total if total else 1.0
        await self.update(document_id, IngestionPhase.EXTRACTING, EXTRACTION_SHARE * share)

    async def embedding_progress(self, document_id: str, done: int, total: int) -> None:
        """Report *done* of *total* chunks embedded (0.5-1.0)."""
        share = done / total if total else 1.0
        await self.update(
            document_id,
            IngestionPhase.EMBEDDING,
            EXTRACTION_SHARE + (1.0 - EXTRACTION_SHARE) * share,
        )

    async def complete(self, document_id: str) -> None:
        await self.update(document_id, IngestionPhase.COMPLETE, 1.0)

    def register_listener(self, document_id: str, callback: ProgressListener) -> None:
        """Register a callback to receive progress updates for a document."""
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, document_id: str, callback: ProgressListener) -> None:
        """Remove a previously registered callback; no-op if absent."""
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)

    def get_status(self, document_id: str) -> IngestionProgress:
        """Return the last progress for *document_id* (0.0 EXTRACTING if unseen)."""
        return self._statuses.get(
            document_id, IngestionProgress(phase=IngestionPhase.EXTRACTING, fraction=0.0)
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, document_id: str, progress: IngestionProgress) -> None:
        for callback in list(self._listeners.get(document_id, [])):
            try:
                result = callback(document_id, progress)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "progress_listener_error",
                    document_id=document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
