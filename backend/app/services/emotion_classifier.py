"""
Emotion Classifier Service
==========================
Classifies the primary emotion of a mood journal entry using the OpenAI
Chat Completions API.

FLOW:
    1. Journal text arrives from the analysis service (already checked
       to be non-empty; the classifier does not re-check)
    2. One chat completion request: system prompt fixes the role and JSON
       output, user prompt embeds the taxonomy and the entry text
    3. The response must be a JSON object with emotion, confidence and
       reasoning
    4. The emotion is matched against the closed taxonomy. Unknown labels
       become "confused" at 0.5 confidence; known labels keep their
       confidence, clamped to [0, 1]
    5. reasoning is logged only, never stored

There is no retry here. Any failure along the way is raised as a single
ProviderError and the caller decides what happens to the entry.
"""

from __future__ import annotations

import json
import logging
import math

import httpx

from app.config import Settings, get_settings
from app.errors import ProviderError
from app.models.mood import (
    DEFAULT_CONFIDENCE,
    FALLBACK_EMOTION,
    Emotion,
    EmotionAnalysis,
)

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

# Low temperature: we want the same entry to get the same label, not
# creative variation. The answer is a small JSON object.
TEMPERATURE = 0.3
MAX_TOKENS = 200

_REQUEST_TIMEOUT_SECONDS = 15.0

_SYSTEM_PROMPT = (
    "You are an empathetic mental health assistant that analyzes mood "
    "journal entries to identify emotions. Always respond in valid JSON format."
)

_USER_PROMPT_TEMPLATE = """\
Analyze the following mood journal entry and determine the primary emotion. \
Choose only ONE emotion from this list: {emotions}.

Journal Entry:
"{text}"

Respond in JSON format with:
{{
  "emotion": "the primary emotion from the list",
  "confidence": a number between 0 and 1 indicating confidence,
  "reasoning": "brief explanation of why this emotion was chosen"
}}

Be empathetic and consider the overall tone and context."""


def build_user_prompt(text: str) -> str:
    emotions = ", ".join(e.value for e in Emotion)
    return _USER_PROMPT_TEMPLATE.format(emotions=emotions, text=text)


def _coerce_confidence(raw: object) -> float:
    """Return *raw* as a float in [0, 1], or the default if it isn't a number."""
    if raw is None or isinstance(raw, bool):
        return DEFAULT_CONFIDENCE
    # JSON integers are unbounded; compare before float() can overflow
    if isinstance(raw, int):
        return float(max(0, min(1, raw)))
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, value))


def normalise_result(result: dict) -> EmotionAnalysis:
    """Validate a parsed model response against the emotion taxonomy.

    Raises ProviderError if the response has no string ``emotion`` field.
    """
    raw_emotion = result.get("emotion")
    if not isinstance(raw_emotion, str):
        raise ProviderError(f"OpenAI response has no emotion field: {result!r}")

    emotion = Emotion.from_label(raw_emotion)
    if emotion is None:
        logger.warning(
            "OpenAI returned unexpected emotion: %s, defaulting to %r",
            raw_emotion.lower(),
            FALLBACK_EMOTION.value,
        )
        return EmotionAnalysis(
            emotion=FALLBACK_EMOTION,
            confidence_score=DEFAULT_CONFIDENCE,
        )

    confidence = _coerce_confidence(result.get("confidence"))
    logger.info(
        "OpenAI analysis: %s (%.2f), reasoning: %s",
        emotion.value,
        confidence,
        result.get("reasoning"),
    )
    return EmotionAnalysis(emotion=emotion, confidence_score=confidence)


class EmotionClassifierService:
    """Maps journal text to a validated emotion and confidence score."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._api_url = OPENAI_CHAT_URL

    async def classify(self, text: str) -> EmotionAnalysis:
        """Classify *text* with a single OpenAI request.

        Raises ProviderError on any provider, transport or parse failure.
        An out-of-taxonomy label is not a failure: it comes back as
        ``confused`` with confidence 0.5.
        """
        try:
            content = await self._call_openai_api(text)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.exception("OpenAI API error")
            raise ProviderError(f"Failed to analyze mood with OpenAI: {exc}") from exc

        if not content or not isinstance(content, str):
            raise ProviderError("No response from OpenAI")

        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.error("OpenAI returned invalid JSON: %s", content[:200])
            raise ProviderError(f"Failed to parse OpenAI response: {exc}") from exc

        if not isinstance(result, dict):
            raise ProviderError(f"OpenAI response is not a JSON object: {content[:200]}")

        return normalise_result(result)

    async def _call_openai_api(self, text: str) -> str | None:
        """Send the classification request and return the message content."""
        headers = {
            "Authorization": f"Bearer {self._settings.openai_api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": self._settings.openai_model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(text)},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }

        async with httpx.AsyncClient(timeout=_REQUEST_TIMEOUT_SECONDS) as client:
            response = await client.post(
                self._api_url,
                headers=headers,
                json=payload,
            )
            response.raise_for_status()

        data = response.json()
        return data["choices"][0]["message"]["content"]


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_classifier: EmotionClassifierService | None = None


def get_emotion_classifier() -> EmotionClassifierService:
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = EmotionClassifierService()
    return _default_classifier
