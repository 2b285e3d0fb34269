"""
Error taxonomy for review runs.

Collaborators (the LLM backend, the GitHub API) raise whatever their client
libraries raise. Everything that needs to know *what kind* of failure it was
goes through this module, so status/message sniffing lives in one place.
"""
import re
import socket
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

RETRYABLE_STATUSES = {429, 500, 502, 503, 504}
RETRYABLE_MESSAGES = (
    "timeout",
    "network",
    "econnreset",
    "connection reset",
    "enotfound",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "rate limit",
)
RETRYABLE_TYPES = (ConnectionResetError, socket.gaierror)

_STATUS_IN_TEXT = {code: re.compile(rf"\b{code}\b") for code in (401, 403, 404, 429)}


class ErrorKind(str, Enum):
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    FORBIDDEN = "forbidden"
    UNEXPECTED = "unexpected"


class ReviewError(Exception):
    """A collaborator failure with an explicit kind and optional HTTP status."""

    def __init__(self, message: str, status: Optional[int] = None, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.kind = kind or _kind_from(status, message)

    def __repr__(self):
        return f"ReviewError(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"


def error_status(error: BaseException) -> Optional[int]:
    """Best-effort HTTP status of an error raised by any client library."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    # google.api_core exceptions expose the HTTP status as `code`
    value = getattr(error, "code", None)
    if isinstance(value, int) and 100 <= value < 600:
        return value
    return None


def error_message(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__


def _kind_from(status: Optional[int], message: str) -> ErrorKind:
    if status == 401:
        return ErrorKind.AUTHENTICATION
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status in (408, 504):
        return ErrorKind.TIMEOUT
    if status == 403:
        return ErrorKind.FORBIDDEN

    text = (message or "").lower()
    if _STATUS_IN_TEXT[401].search(text) or "unauthorized" in text:
        return ErrorKind.AUTHENTICATION
    if _STATUS_IN_TEXT[404].search(text) or "not found" in text:
        return ErrorKind.NOT_FOUND
    if _STATUS_IN_TEXT[429].search(text) or "rate limit" in text:
        return ErrorKind.RATE_LIMITED
    if "timeout" in text or "timed out" in text:
        return ErrorKind.TIMEOUT
    if _STATUS_IN_TEXT[403].search(text) or "forbidden" in text:
        return ErrorKind.FORBIDDEN
    return ErrorKind.UNEXPECTED


def classify_error(error: BaseException) -> ErrorKind:
    if isinstance(error, ReviewError):
        return error.kind
    return _kind_from(error_status(error), error_message(error))


def to_review_error(error: BaseException) -> ReviewError:
    """Translate any collaborator exception into a ReviewError."""
    if isinstance(error, ReviewError):
        return error
    return ReviewError(error_message(error), status=error_status(error))


def is_retryable(error: BaseException) -> bool:
    if isinstance(error, RETRYABLE_TYPES):
        return True
    if error_status(error) in RETRYABLE_STATUSES:
        return True
    text = error_message(error).lower()
    return any(marker in text for marker in RETRYABLE_MESSAGES)


def is_rate_limited(error: BaseException) -> bool:
    if error_status(error) == 429:
        return True
    text = error_message(error).lower()
    return bool(_STATUS_IN_TEXT[429].search(text)) or "rate limit" in text


# -----------------------------------------------------------
# Human-readable notice posted on the PR when a review fails
# -----------------------------------------------------------
_HEADLINES = {
    ErrorKind.AUTHENTICATION: "Authentication with the review backend failed.",
    ErrorKind.NOT_FOUND: "The review backend resource or model was not found.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. I'll try again later.",
    ErrorKind.TIMEOUT: "Request timed out while analyzing the code.",
    ErrorKind.FORBIDDEN: "Permission denied.",
    ErrorKind.UNEXPECTED: "An unexpected error occurred.",
}

_HINTS = {
    ErrorKind.AUTHENTICATION: [
        "Check that GEMINI_API_KEY is valid",
        "Verify the API key has access to the configured model",
    ],
    ErrorKind.NOT_FOUND: [
        "Verify GEMINI_MODEL names an available model",
        "Check that the repository and pull request still exist",
    ],
    ErrorKind.RATE_LIMITED: [
        "The review backend rate limits have been reached",
        "Consider a higher quota tier or fewer concurrent reviews",
    ],
    ErrorKind.TIMEOUT: [
        "The PR might be too large for analysis",
        "Try breaking down the changes into smaller PRs",
    ],
    ErrorKind.FORBIDDEN: [
        "Check the GitHub token permissions",
        "Verify the bot has write access to this repository",
    ],
}


def format_error_notice(error: BaseException, now: Optional[datetime] = None) -> str:
    kind = classify_error(error)
    lines: List[str] = [f"⚠️ I encountered an error while reviewing this PR. {_HEADLINES[kind]}"]

    hints = _HINTS.get(kind, [])
    if hints:
        lines.append("")
        lines.append("**Possible solutions:**")
        lines.extend(f"- {hint}" for hint in hints)

    stamp = (now or datetime.now(timezone.utc)).isoformat()
    lines.extend([
        "",
        "<details>",
        "<summary>Technical Details</summary>",
        "",
        f"**Error Type:** {type(error).__name__}",
        f"**Category:** {kind.value}",
        f"**Message:** {error_message(error)}",
        f"**Timestamp:** {stamp}",
    ])
    status = error_status(error)
    if status is not None:
        lines.append(f"**HTTP Status:** {status}")
    lines.append("")
    lines.append("</details>")
    return "\n".join(lines)
