"""
Database Webhook Router
=======================
POST /api/v1/webhooks/mood-entries — Analyse a newly inserted mood entry.

A Supabase Database Webhook on INSERT into mood_entries posts the new
row here. The handler classifies the entry text and writes the result
(or a failed status) onto the row.

Retries are the host's job, not ours: any failure is reported as a 500
so the webhook delivery is retried later. Re-running the same entry
simply overwrites status, label and timestamp again.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Header, status

from app.config import get_settings
from app.errors import ErrorCode, endpoint_error
from app.models.mood import AnalyzeEntryResponse, WebhookPayload
from app.services.mood_analysis import FailurePolicy, get_mood_analysis_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


def _verify_webhook_secret(provided: Optional[str]) -> None:
    expected = get_settings().webhook_secret
    if not expected:
        return
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Rejected mood entry webhook with missing or bad secret")
        raise endpoint_error(ErrorCode.UNAUTHENTICATED, "Invalid webhook secret")


@router.post(
    "/mood-entries",
    response_model=AnalyzeEntryResponse,
    status_code=status.HTTP_200_OK,
    summary="Analyse a newly created mood entry",
    responses={
        200: {"description": "Entry analysed, or event skipped"},
        400: {"description": "Payload carries no entry record"},
        401: {"description": "Webhook secret missing or wrong"},
        500: {"description": "Analysis failed; entry marked failed, delivery should be retried"},
    },
)
async def analyze_mood_entry(
    payload: WebhookPayload,
    x_webhook_secret: Optional[str] = Header(default=None),
) -> AnalyzeEntryResponse:
    _verify_webhook_secret(x_webhook_secret)

    if payload.type.upper() != "INSERT":
        logger.debug("Ignoring %s event on %s", payload.type, payload.table)
        return AnalyzeEntryResponse(success=False, skipped=True)

    if not payload.record or payload.record.get("id") in (None, ""):
        raise endpoint_error(ErrorCode.INVALID_ARGUMENT, "Webhook payload has no entry record")

    # Read straight from the raw record so a malformed row still gets its
    # failed status written by the analysis service.
    entry_id = str(payload.record["id"])
    text = payload.record.get("text")

    try:
        analysis = await get_mood_analysis_service().analyze(
            entry_id, text, on_failure=FailurePolicy.MARK_FAILED
        )
    except Exception as exc:
        # The entry is already marked failed; a 5xx asks the host to retry.
        raise endpoint_error(
            ErrorCode.INTERNAL, f"Failed to analyze mood entry {entry_id}: {exc}"
        ) from exc

    return AnalyzeEntryResponse(
        success=True,
        entry_id=entry_id,
        emotion=analysis.emotion,
        confidence_score=analysis.confidence_score,
    )
