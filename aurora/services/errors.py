"""Map raw failures into user-facing error categories."""

import asyncio
from typing import Optional

import httpx

from ..config import DEMO_TICKERS
from ..domain.models import AnalysisFailure, ErrorCategory, UserFriendlyError

_TICKER_HINT = f"Try one of: {', '.join(DEMO_TICKERS)}."

CANCELLATION_ERROR = UserFriendlyError(
    category=ErrorCategory.UNKNOWN,
    message="Analysis canceled before completion.",
    suggestion="Adjust your inputs and start a new analysis when you are ready.",
)

QUEUE_FULL_ERROR = UserFriendlyError(
    category=ErrorCategory.ANALYSIS,
    message="There are already multiple analyses waiting in line.",
    suggestion="Please wait for the current queue to finish before adding new requests.",
)

NOT_IN_DEMO_ERROR = UserFriendlyError(
    ErrorCategory.DATA,
    "This ticker is not available in the demo dataset.",
    _TICKER_HINT,
)

TICKER_REQUIRED_ERROR = UserFriendlyError(
    ErrorCategory.DATA,
    "Please enter a valid stock ticker to run an analysis.",
    "Provide a ticker (e.g., AAPL) and resubmit the form.",
)

TICKER_NOT_FOUND_ERROR = UserFriendlyError(
    ErrorCategory.DATA,
    "We could not find stock data for that ticker.",
    _TICKER_HINT,
)

TIMEOUT_ERROR = UserFriendlyError(
    ErrorCategory.NETWORK,
    "The data request timed out before completing.",
    "Check your connection and try again in a few seconds.",
)

UNREACHABLE_ERROR = UserFriendlyError(
    ErrorCategory.NETWORK,
    "We could not reach the data provider.",
    "Check your internet connection or VPN/firewall settings and try again.",
)

ANALYSIS_ERROR = UserFriendlyError(
    ErrorCategory.ANALYSIS,
    "We were unable to complete the analysis.",
    "Please try again in a moment. If the issue persists, contact support.",
)

# Ordered (phrases, error) rules; the first match wins
_PHRASE_RULES = (
    (("demo dataset", "available tickers"), NOT_IN_DEMO_ERROR),
    (("ticker is required",), TICKER_REQUIRED_ERROR),
    (("not found",), TICKER_NOT_FOUND_ERROR),
    (("timeout", "timed out"), TIMEOUT_ERROR),
    (("network", "fetch failed", "connection"), UNREACHABLE_ERROR),
    (("analysis",), ANALYSIS_ERROR),
)

_FALLBACKS = {
    ErrorCategory.NETWORK: UserFriendlyError(
        ErrorCategory.NETWORK,
        "We could not reach the data provider.",
        "Check your connection and try again.",
    ),
    ErrorCategory.DATA: UserFriendlyError(
        ErrorCategory.DATA,
        "We were unable to process that ticker.",
        f"Verify the ticker symbol or try one of: {', '.join(DEMO_TICKERS)}.",
    ),
    ErrorCategory.ANALYSIS: UserFriendlyError(
        ErrorCategory.ANALYSIS,
        "We were unable to complete the analysis.",
        "Please retry in a moment or adjust your input.",
    ),
}

_UNKNOWN_MESSAGE = "An unexpected error occurred while running the analysis."
_UNKNOWN_SUGGESTION = "Please try again. If it keeps failing, reach out to support."


def _already_classified(error: object) -> Optional[UserFriendlyError]:
    if isinstance(error, UserFriendlyError):
        return error
    if isinstance(error, AnalysisFailure):
        return error.detail
    try:
        category = getattr(error, "category")
        message = getattr(error, "message")
        suggestion = getattr(error, "suggestion")
    except AttributeError:
        return None
    try:
        return UserFriendlyError(ErrorCategory(category), str(message), str(suggestion))
    except ValueError:
        return None


def _raw_message(error: object) -> str:
    if isinstance(error, BaseException):
        try:
            return str(error)
        except Exception:
            return ""
    return ""


def classify_error(
    error: object,
    fallback: ErrorCategory = ErrorCategory.UNKNOWN,
) -> UserFriendlyError:
    """
    Convert any raw failure into a UserFriendlyError.

    Already classified errors pass through unchanged. Otherwise the message is
    matched (case-insensitive) against known phrases, then transport exception
    types, then the fallback category default. Never raises.
    """
    classified = _already_classified(error)
    if classified is not None:
        return classified

    raw = _raw_message(error)
    normalized = raw.lower()

    for phrases, friendly in _PHRASE_RULES:
        if any(phrase in normalized for phrase in phrases):
            return friendly

    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return TIMEOUT_ERROR
    if isinstance(error, httpx.TransportError):
        return UNREACHABLE_ERROR

    if fallback in _FALLBACKS:
        return _FALLBACKS[fallback]

    return UserFriendlyError(
        ErrorCategory.UNKNOWN,
        raw or _UNKNOWN_MESSAGE,
        _UNKNOWN_SUGGESTION,
    )
