"""
auth/errors.py -- Error taxonomy for the auth core.

Expected failures are part of the contract, not crashes:

  not_found          -- unknown admin, guest or principal
  invalid_or_expired -- bad/used/expired passcode, bad/expired/malformed token
  validation_error   -- missing required field, non-numeric hotel id
  authz_denied       -- authenticated principal lacks access to a hotel
  internal_error     -- storage or signing failure

The MFA engine reports these as ErrorCode values on its result objects. The
access guard raises the AuthError subclasses below; auth/dependencies.py
turns them into HTTP responses. Nothing outside this taxonomy should reach a
caller except through the generic 500 handler in api/main.py.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    not_found = "not_found"
    invalid_or_expired = "invalid_or_expired"
    validation_error = "validation_error"
    authz_denied = "authz_denied"
    internal_error = "internal_error"


class AuthError(Exception):
    """Base class for expected auth failures. Carries an HTTP status."""

    code: ErrorCode = ErrorCode.internal_error
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_detail(self) -> dict:
        """Return the {"code", "message"} dict used in HTTPException.detail."""
        return {"code": self.code.value, "message": self.message}


class NotFound(AuthError):
    code = ErrorCode.not_found
    status_code = 404


class InvalidOrExpired(AuthError):
    code = ErrorCode.invalid_or_expired
    status_code = 401


class ValidationFailed(AuthError):
    code = ErrorCode.validation_error
    status_code = 400


class AuthzDenied(AuthError):
    code = ErrorCode.authz_denied
    status_code = 403
