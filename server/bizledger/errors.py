from typing import Dict, List, Optional


class LedgerError(Exception):
    """Base class for errors the API turns into a structured JSON response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"success": False, "message": self.message}


class Unauthorized(LedgerError):
    status_code = 401
    default_message = "Unauthorized - No valid session or token"


class NotFoundError(LedgerError):
    status_code = 404
    default_message = "Not found"


class LedgerValidationError(LedgerError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.errors = errors

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class DatabaseUnavailable(LedgerError):
    status_code = 500
    default_message = "Unable to reach the database. Please try again shortly."


class TransactionTimeout(LedgerError):
    status_code = 500
    default_message = "The operation timed out before it could be saved. Please retry."

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["retryable"] = True
        return payload


UNREACHABLE_MARKERS = (
    "can't reach database",
    "cannot reach database",
    "could not connect",
    "connection refused",
    "unable to open database file",
)

TIMEOUT_MARKERS = (
    "lock timeout",
    "lock_timeout",
    "statement timeout",
    "canceling statement due to",
    "database is locked",
)


def is_unreachable_error(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in UNREACHABLE_MARKERS)


def is_timeout_error(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in TIMEOUT_MARKERS)
