"""
Mood Entry Schemas
==================
Pydantic models and enums for mood entries and their emotion analysis.

Key design decisions:
- The emotion taxonomy is closed. Anything the model returns outside it
  is mapped to Emotion.CONFUSED by the classifier, so no other label
  can ever reach the database.
- Database columns are snake_case; the mobile app speaks camelCase, so
  request/response models carry camelCase aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

class Emotion(str, Enum):
    """The fixed emotion taxonomy, in prompt order."""

    JOY = "joy"
    SADNESS = "sadness"
    ANXIETY = "anxiety"
    ANGER = "anger"
    FEAR = "fear"
    CONTENTMENT = "contentment"
    EXCITEMENT = "excitement"
    FRUSTRATION = "frustration"
    LONELINESS = "loneliness"
    HOPE = "hope"
    OVERWHELMED = "overwhelmed"
    PEACEFUL = "peaceful"
    CONFUSED = "confused"
    GRATEFUL = "grateful"
    STRESSED = "stressed"

    @classmethod
    def from_label(cls, raw: Any) -> Optional[Emotion]:
        """Map an arbitrary model output to a taxonomy member.

        Matching is case-insensitive only; surrounding whitespace does not match.
        Returns None for anything unmatched, including non-strings.
        """
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.lower())
        except ValueError:
            return None


FALLBACK_EMOTION = Emotion.CONFUSED
DEFAULT_CONFIDENCE = 0.5


class AnalysisStatus(str, Enum):
    """Value of mood_entries.analysis_status. Null in the DB means pending."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class MoodEntry(BaseModel):
    """A row from mood_entries. Only the fields this service reads or writes."""

    # Lenient: rows may carry legacy labels, unknown statuses or non-string text.
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    user_id: Optional[str] = None
    text: Any = None
    emotion: Optional[str] = None
    confidence_score: Optional[float] = None
    analysis_status: Optional[str] = None
    analyzed_at: Optional[str] = None

    @property
    def has_text(self) -> bool:
        return isinstance(self.text, str) and bool(self.text)


class EmotionAnalysis(BaseModel):
    """Validated classifier output."""

    emotion: Emotion
    confidence_score: float = Field(..., ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Manual retry
# ---------------------------------------------------------------------------

class RetryAnalysisResponse(BaseModel):
    """Returned to the owner after a successful manual re-analysis."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    emotion: Emotion
    confidence_score: float = Field(..., ge=0.0, le=1.0, alias="confidenceScore")


# ---------------------------------------------------------------------------
# Database webhook
# ---------------------------------------------------------------------------

class WebhookPayload(BaseModel):
    """Supabase Database Webhook body.

    See https://supabase.com/docs/guides/database/webhooks for the format.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str
    table: str
    db_schema: str = Field(default="public", alias="schema")
    record: Optional[dict[str, Any]] = None
    old_record: Optional[dict[str, Any]] = None


class AnalyzeEntryResponse(BaseModel):
    """Advisory summary returned to the webhook caller."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    skipped: bool = False
    entry_id: Optional[str] = Field(default=None, alias="entryId")
    emotion: Optional[Emotion] = None
    confidence_score: Optional[float] = Field(default=None, alias="confidenceScore")
