"""
QuickBooks error taxonomy

Every vendor-facing failure is funnelled through ``classify_error`` so callers
only ever see a ``QuickBooksError`` carrying one of a small set of kinds.
"""

from enum import Enum
from typing import Any, Dict, Optional

import requests


class QuickBooksErrorType(str, Enum):
    """Kinds of failure a QuickBooks call can end in"""

    AUTHENTICATION = "authentication"
    CONNECTION = "connection"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


ERROR_GUIDANCE = {
    QuickBooksErrorType.AUTHENTICATION: (
        "Authentication Error",
        "Your authentication with QuickBooks has expired or is invalid. "
        "Please reconnect your account.",
    ),
    QuickBooksErrorType.CONNECTION: (
        "Connection Problem",
        "We couldn't connect to QuickBooks. Please check your internet "
        "connection and try again.",
    ),
    QuickBooksErrorType.RATE_LIMIT: (
        "Rate Limit Exceeded",
        "You've made too many requests to QuickBooks. Please wait a few "
        "minutes and try again.",
    ),
    QuickBooksErrorType.SERVER_ERROR: (
        "QuickBooks Server Error",
        "QuickBooks is experiencing server issues. Please try again later.",
    ),
    QuickBooksErrorType.INVALID_REQUEST: (
        "Invalid Request",
        "There was a problem with the request to QuickBooks. Please try "
        "reconnecting your account.",
    ),
    QuickBooksErrorType.UNKNOWN: (
        "Connection Error",
        "There was a problem connecting to QuickBooks. Please try again or "
        "reconnect your account.",
    ),
}

# OAuth error codes from the token endpoint that mean the grant itself is bad
AUTH_GRANT_ERRORS = {"invalid_grant", "invalid_client", "unauthorized_client"}


class QuickBooksError(Exception):
    """A classified QuickBooks failure"""

    def __init__(self,
                 error_type: QuickBooksErrorType,
                 message: str,
                 status_code: Optional[int] = None,
                 intuit_tid: Optional[str] = None):
        super().__init__(message)
        self.error_type = QuickBooksErrorType(error_type)
        self.message = message
        self.status_code = status_code
        self.intuit_tid = intuit_tid

    @property
    def title(self) -> str:
        return ERROR_GUIDANCE[self.error_type][0]

    @property
    def help_text(self) -> str:
        return ERROR_GUIDANCE[self.error_type][1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.error_type.value,
            "message": self.message,
            "title": self.title,
            "help": self.help_text,
        }

    def __repr__(self) -> str:
        return f"<QuickBooksError({self.error_type.value}, status={self.status_code}): {self.message}>"


def parse_error_type(value: Optional[str]) -> QuickBooksErrorType:
    """Read an error kind from untrusted input (e.g. a query parameter)"""
    try:
        return QuickBooksErrorType(value)
    except ValueError:
        return QuickBooksErrorType.UNKNOWN


def classify_status(status_code: int) -> QuickBooksErrorType:
    """Map an HTTP status code to an error kind"""
    if status_code in (401, 403):
        return QuickBooksErrorType.AUTHENTICATION
    if status_code == 429:
        return QuickBooksErrorType.RATE_LIMIT
    if status_code >= 500:
        return QuickBooksErrorType.SERVER_ERROR
    if 400 <= status_code < 500:
        return QuickBooksErrorType.INVALID_REQUEST
    return QuickBooksErrorType.UNKNOWN


def extract_error_message(response: requests.Response) -> Optional[str]:
    """
    Pull a readable message out of a QuickBooks error body

    Accounting API errors look like
    ``{"Fault": {"Error": [{"Message": ..., "Detail": ..., "code": ...}]}}``,
    OAuth errors like ``{"error": ..., "error_description": ...}``.
    """
    try:
        body = response.json()
    except ValueError:
        return None

    if not isinstance(body, dict):
        return None

    fault = body.get("Fault") or body.get("fault")
    if isinstance(fault, dict):
        errors = fault.get("Error") or fault.get("error") or []
        if isinstance(errors, dict):
            errors = [errors]
        if errors:
            first = errors[0]
            return first.get("Detail") or first.get("Message") or first.get("message")

    if body.get("error"):
        return body.get("error_description") or str(body["error"])

    return None


def error_from_response(response: requests.Response,
                        default_message: Optional[str] = None) -> QuickBooksError:
    """Build a classified error from a failed HTTP response"""
    status_code = response.status_code
    message = extract_error_message(response) or default_message or f"HTTP {status_code}"
    return QuickBooksError(
        classify_status(status_code),
        message,
        status_code=status_code,
        intuit_tid=response.headers.get("intuit_tid"),
    )


def classify_error(error: Exception) -> QuickBooksError:
    """
    Map any exception raised around a QuickBooks call to a QuickBooksError

    Args:
        error: The raised exception

    Returns:
        Classified error (the same object if it is already classified)
    """
    if isinstance(error, QuickBooksError):
        return error

    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return QuickBooksError(
            QuickBooksErrorType.CONNECTION,
            f"Could not reach QuickBooks: {error}",
        )

    response = getattr(error, "response", None)
    if isinstance(error, requests.RequestException) and response is not None:
        return error_from_response(response, default_message=str(error))

    return QuickBooksError(QuickBooksErrorType.UNKNOWN, str(error) or error.__class__.__name__)
