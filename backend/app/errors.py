"""
Error Types
===========
Domain errors raised while analysing a mood entry, plus the reason codes
the HTTP endpoints return to callers.

    AnalysisError
    ├── InputError        entry has no text to analyse
    ├── ProviderError     OpenAI call failed or returned unusable output
    └── PersistenceError  the completed result could not be written

An out-of-taxonomy label from the model is not an error: the classifier
normalises it to "confused" and the call succeeds.
"""

from __future__ import annotations

from enum import Enum

from fastapi import HTTPException, status


class AnalysisError(Exception):
    """Base class for anything that prevents an entry from being analysed."""


class InputError(AnalysisError):
    """The entry is missing text, so the classifier was never called."""


class ProviderError(AnalysisError):
    """The completion provider failed, returned nothing, or returned bad JSON.

    Always raised ``from`` the underlying exception so the cause survives
    into the logs.
    """


class PersistenceError(AnalysisError):
    """Writing the analysis result back to the entry failed."""


# ---------------------------------------------------------------------------
# Endpoint reason codes
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Reason codes returned in ``detail.code`` by the analysis endpoints."""

    UNAUTHENTICATED = "unauthenticated"
    INVALID_ARGUMENT = "invalid-argument"
    NOT_FOUND = "not-found"
    PERMISSION_DENIED = "permission-denied"
    INTERNAL = "internal"


_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def endpoint_error(code: ErrorCode, message: str) -> HTTPException:
    """Build the HTTPException for *code* with the standard detail body."""
    return HTTPException(
        status_code=_STATUS_BY_CODE[code],
        detail={"message": message, "code": code.value},
    )
