"""
Mood Analysis Service
=====================
Runs the emotion classifier for one mood entry and writes the outcome
back onto the entry row. Both entry points go through here:

    webhook (new entry)  ──► analyze(..., FailurePolicy.MARK_FAILED)
    manual retry         ──► analyze(..., FailurePolicy.SURFACE_ONLY)

State written per attempt:

    success → emotion, confidence_score, analysis_status="completed", analyzed_at
    failure → analysis_status="failed", analyzed_at     (MARK_FAILED only)

On failure the previous emotion/confidence_score are left as they were,
so a failed retry never erases an earlier good result. Every attempt
overwrites the status and timestamp, which makes re-running the same
entry safe. There is no retry loop; re-invocation is the caller's job.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool
from supabase import Client

from app.db.supabase import MOOD_ENTRIES_TABLE, get_supabase_client
from app.errors import InputError, PersistenceError
from app.models.mood import AnalysisStatus, EmotionAnalysis
from app.services.emotion_classifier import (
    EmotionClassifierService,
    get_emotion_classifier,
)

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What to do with the entry row when an analysis attempt fails."""

    MARK_FAILED = "mark_failed"  # best-effort write of analysis_status="failed"
    SURFACE_ONLY = "surface_only"  # leave the row alone, just raise


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MoodAnalysisService:
    """Classifies a mood entry and persists the result."""

    def __init__(
        self,
        db: Client | None = None,
        classifier: EmotionClassifierService | None = None,
    ) -> None:
        self._db = db or get_supabase_client()
        self._classifier = classifier or get_emotion_classifier()

    async def analyze(
        self,
        entry_id: str,
        text: Any,
        on_failure: FailurePolicy,
    ) -> EmotionAnalysis:
        """Analyse *text* and store the result on entry *entry_id*.

        Raises InputError if *text* is missing, empty or not a string (the
        classifier is not called), ProviderError if classification fails, and
        PersistenceError if the completed result cannot be written. With
        MARK_FAILED, a failed status is written before any error, expected
        or not, is re-raised.
        """
        logger.info("Analyzing mood entry: %s", entry_id)

        try:
            if not isinstance(text, str) or not text:
                raise InputError("Mood entry has no text to analyze")

            analysis = await self._classifier.classify(text)
            await self._write_completed(entry_id, analysis)

        except Exception:
            logger.exception("Error analyzing mood entry %s", entry_id)
            if on_failure is FailurePolicy.MARK_FAILED:
                await self._write_failed(entry_id)
            raise

        logger.info(
            "Successfully analyzed mood entry %s: %s (%.2f)",
            entry_id,
            analysis.emotion.value,
            analysis.confidence_score,
        )
        return analysis

    async def _write_completed(self, entry_id: str, analysis: EmotionAnalysis) -> None:
        try:
            query = self._db.table(MOOD_ENTRIES_TABLE).update({
                "emotion": analysis.emotion.value,
                "confidence_score": analysis.confidence_score,
                "analyzed_at": _now_iso(),
                "analysis_status": AnalysisStatus.COMPLETED.value,
            }).eq("id", entry_id)
            await run_in_threadpool(query.execute)
        except Exception as exc:
            raise PersistenceError(
                f"Failed to store analysis for entry {entry_id}: {exc}"
            ) from exc

    async def _write_failed(self, entry_id: str) -> None:
        """Best-effort: a failure here is logged and never replaces the original error."""
        try:
            query = self._db.table(MOOD_ENTRIES_TABLE).update({
                "analysis_status": AnalysisStatus.FAILED.value,
                "analyzed_at": _now_iso(),
            }).eq("id", entry_id)
            await run_in_threadpool(query.execute)
        except Exception:
            logger.exception("Failed to update entry status for %s", entry_id)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_service: MoodAnalysisService | None = None


def get_mood_analysis_service() -> MoodAnalysisService:
    global _default_service
    if _default_service is None:
        _default_service = MoodAnalysisService()
    return _default_service
