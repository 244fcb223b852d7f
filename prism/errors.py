"""
Error model for the Prism client.

Client-side precondition failures raise ``PrismError`` subclasses. Transport
failures are not wrapped: ``requests.RequestException`` propagates unchanged,
and domain errors from the backend are passed through as responses.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Structured error codes raised by the client core."""
    TRANSITION_NOT_ALLOWED = "TRANSITION_NOT_ALLOWED"
    RESUME_REQUIRED = "RESUME_REQUIRED"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"


class PrismError(Exception):
    """Base exception carrying a structured error code."""

    code: ErrorCode = ErrorCode.TRANSITION_NOT_ALLOWED

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        """
        Args:
            message: Human-readable error message
            code: Overrides the class default error code
        """
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code.value, "message": self.message}}


class TransitionError(PrismError):
    """A lifecycle action is not legal for the current status or actor."""
    code = ErrorCode.TRANSITION_NOT_ALLOWED


class ResumeRequiredError(PrismError):
    """The candidate has no resume on file, so applying is refused locally."""
    code = ErrorCode.RESUME_REQUIRED


class UnknownStatusError(PrismError, ValueError):
    """The backend sent a status string outside the known enum."""
    code = ErrorCode.UNKNOWN_STATUS


class NotAuthenticatedError(PrismError):
    """An operation needed a cached identity and none is stored."""
    code = ErrorCode.NOT_AUTHENTICATED


def create_transition_error(current: str, action: str, allowed: list[str]) -> TransitionError:
    allowed_text = ", ".join(f"'{a}'" for a in allowed) or "none"
    return TransitionError(
        f"Action '{action}' is not allowed while status is '{current}'. "
        f"Allowed actions: {allowed_text}"
    )


def create_unknown_status_error(kind: str, value: object) -> UnknownStatusError:
    return UnknownStatusError(f"Unknown {kind} status from backend: {value!r}")
