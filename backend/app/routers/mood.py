"""
Mood Analysis Router
====================
POST /api/v1/mood/retry-analysis — Re-run emotion analysis for one entry.

Called by the mobile app when the user taps "retry" on an entry whose
automatic analysis failed (or that they simply want re-read). Checks run
in a fixed order and each has its own reason code:

    1. Valid bearer token                  → else unauthenticated
    2. entryId is a non-empty string       → else invalid-argument
    3. Entry exists                        → else not-found
    4. Caller owns the entry               → else permission-denied
    5. Entry has text                      → else invalid-argument

Nothing is written unless all five pass. If classification then fails,
the caller gets `internal` and the entry row is left untouched: unlike
the webhook path we do not mark it failed, so a bad retry never clobbers
an earlier completed analysis.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Header, status
from fastapi.concurrency import run_in_threadpool

from app.db.supabase import MOOD_ENTRIES_TABLE, get_supabase_client
from app.errors import ErrorCode, endpoint_error
from app.models.mood import MoodEntry, RetryAnalysisResponse
from app.services.mood_analysis import FailurePolicy, get_mood_analysis_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/mood", tags=["mood"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_authenticated_user_id(authorization: Optional[str]) -> str:
    """Verify the Supabase JWT and return the caller's user id.

    Raises `unauthenticated` if the header is missing, malformed, or the
    token does not resolve to a user.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise endpoint_error(ErrorCode.UNAUTHENTICATED, "User must be authenticated")

    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise endpoint_error(ErrorCode.UNAUTHENTICATED, "User must be authenticated")

    db = get_supabase_client()

    try:
        auth_response = await run_in_threadpool(db.auth.get_user, token)
    except Exception as exc:
        logger.warning("Auth token verification failed: %s", exc)
        raise endpoint_error(
            ErrorCode.UNAUTHENTICATED, "Invalid or expired token"
        ) from exc

    if not auth_response or not auth_response.user:
        raise endpoint_error(ErrorCode.UNAUTHENTICATED, "User not found for token")

    return auth_response.user.id


async def _fetch_entry(entry_id: str) -> Optional[MoodEntry]:
    db = get_supabase_client()
    query = (
        db.table(MOOD_ENTRIES_TABLE)
        .select("*")
        .eq("id", entry_id)
        .maybe_single()
    )
    result = await run_in_threadpool(query.execute)
    # maybe_single() yields None rather than an empty response on no match
    if result is None or not result.data:
        return None
    return MoodEntry(**result.data)


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.post(
    "/retry-analysis",
    response_model=RetryAnalysisResponse,
    status_code=status.HTTP_200_OK,
    summary="Retry emotion analysis for a mood entry",
    description=(
        "Re-run AI emotion analysis for one of the caller's own mood entries "
        "and return the result. The entry is updated only on success."
    ),
    responses={
        200: {"description": "Entry re-analysed"},
        400: {"description": "invalid-argument: missing entryId or entry has no text"},
        401: {"description": "unauthenticated"},
        403: {"description": "permission-denied: caller does not own the entry"},
        404: {"description": "not-found"},
        500: {"description": "internal: analysis failed"},
    },
)
async def retry_mood_analysis(
    body: Any = Body(default=None, description='{"entryId": "<mood entry id>"}'),
    authorization: Optional[str] = Header(
        default=None, description="Bearer token from Supabase Auth"
    ),
) -> RetryAnalysisResponse:
    user_id = await _get_authenticated_user_id(authorization)

    # Validated after auth: a bad body is invalid-argument, not a 422
    entry_id = body.get("entryId") if isinstance(body, dict) else None
    if not isinstance(entry_id, str) or not entry_id.strip():
        raise endpoint_error(ErrorCode.INVALID_ARGUMENT, "Entry ID is required")

    try:
        entry = await _fetch_entry(entry_id)
    except Exception as exc:
        logger.exception("Error retrying analysis for %s", entry_id)
        raise endpoint_error(
            ErrorCode.INTERNAL, f"Failed to retry analysis: {exc}"
        ) from exc

    if entry is None:
        raise endpoint_error(ErrorCode.NOT_FOUND, "Mood entry not found")

    if entry.user_id != user_id:
        logger.warning(
            "User %s attempted to retry analysis of entry %s owned by another user",
            user_id,
            entry_id,
        )
        raise endpoint_error(
            ErrorCode.PERMISSION_DENIED,
            "You do not have permission to retry this analysis",
        )

    if not entry.has_text:
        raise endpoint_error(ErrorCode.INVALID_ARGUMENT, "Mood entry has no text to analyze")

    try:
        analysis = await get_mood_analysis_service().analyze(
            entry_id, entry.text, on_failure=FailurePolicy.SURFACE_ONLY
        )
    except Exception as exc:
        logger.error("Error retrying analysis for %s: %s", entry_id, exc)
        raise endpoint_error(
            ErrorCode.INTERNAL, f"Failed to retry analysis: {exc}"
        ) from exc

    return RetryAnalysisResponse(
        success=True,
        emotion=analysis.emotion,
        confidence_score=analysis.confidence_score,
    )
