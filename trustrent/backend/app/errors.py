# backend/app/errors.py
from __future__ import annotations

from typing import Optional


class TrustRentError(Exception):
    """Base for every error a service can raise on purpose."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationFailed(TrustRentError):
    """Malformed or missing input. Raised before any write happens."""

    code = "VALIDATION_FAILED"
    status_code = 400

    def __init__(self, message: str, fields: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.fields = dict(fields or {})


class ReconciliationFailed(TrustRentError):
    code = "RECONCILIATION_FAILED"
    status_code = 500
    retryable = False


class AllocationExhausted(ReconciliationFailed):
    code = "ALLOCATION_EXHAUSTED"
    status_code = 503
    retryable = True


class TokenNotFound(TrustRentError):
    code = "TOKEN_NOT_FOUND"
    status_code = 404


class AlreadyUsed(TrustRentError):
    code = "ALREADY_USED"
    status_code = 409


class EmailMismatch(TrustRentError):
    code = "EMAIL_MISMATCH"
    status_code = 400


class AccountExists(TrustRentError):
    code = "ACCOUNT_EXISTS"
    status_code = 409


class NotFound(TrustRentError):
    code = "NOT_FOUND"
    status_code = 404


class Forbidden(TrustRentError):
    code = "FORBIDDEN"
    status_code = 403


class Unauthorized(TrustRentError):
    code = "UNAUTHORIZED"
    status_code = 401
