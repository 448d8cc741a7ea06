"""
auth/mfa.py -- One-time passcode lifecycle for admin multi-factor login.

Flow:
  1. request_verification(email) -> create_verification(admin_id)
       A fresh 6-digit code is stored unused with an absolute expiry and
       handed to the PasscodeSender. Earlier unexpired codes stay valid: a
       code that is already on its way to the admin's mailbox must not be
       invalidated by a second request.
  2. verify_passcode(email, passcode)
       The newest matching unused, unexpired record is consumed with a
       conditional update (see PasscodeStore.mark_used). A second attempt
       with the same code -- sequential or concurrent -- fails.
  3. cleanup_stale(admin_id)
       Used records that expired more than 24 hours ago are deleted after each
       successful verification. This runs as its own step: a cleanup failure
       is logged and never turns a successful verification into a failure.

Results, not exceptions:
  Expected failures (unknown admin, wrong/used/expired code) come back as
  result objects with an ErrorCode so the HTTP layer can choose a status.
  Unexpected storage errors are logged and reported as internal_error.

Security:
  [C2] Codes come from secrets (CSPRNG), uniform over 100000-999999.
  [C3] Codes are never logged.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from auth.delivery import NullPasscodeSender, PasscodeSender
from auth.errors import ErrorCode
from auth.schema import now_iso
from auth.store import IdentityStore, PasscodeStore

logger = logging.getLogger("zapmenu.mfa")

PASSCODE_MIN = 100000
PASSCODE_MAX = 999999
DEFAULT_EXPIRATION_MINUTES = 10
STALE_USED_RETENTION = timedelta(hours=24)


def generate_passcode() -> str:
    """Return a 6-digit code drawn uniformly from [100000, 999999] [C2]."""
    return str(PASSCODE_MIN + secrets.randbelow(PASSCODE_MAX - PASSCODE_MIN + 1))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VerificationRequestResult:
    success: bool
    message: str
    passcode: str | None = None
    expires_at: datetime | None = None
    admin_id: int | None = None
    delivered: bool = False
    error: ErrorCode | None = None


@dataclass(frozen=True)
class VerifyPasscodeResult:
    success: bool
    message: str
    admin_id: int | None = None
    hotel_id: int | None = None
    error: ErrorCode | None = None


class MFAEngine:
    """Create and verify admin passcodes.

    Args:
        identity:           Admin lookups.
        passcodes:          Verification record storage.
        sender:             Out-of-band delivery channel.
        expiration_minutes: Default code lifetime.
        clock:              Returns the current UTC time. Tests inject a fixed clock.
    """

    def __init__(
        self,
        identity: IdentityStore,
        passcodes: PasscodeStore,
        sender: PasscodeSender | None = None,
        expiration_minutes: int = DEFAULT_EXPIRATION_MINUTES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.identity = identity
        self.passcodes = passcodes
        self.sender = sender or NullPasscodeSender()
        self.expiration_minutes = expiration_minutes
        self.clock = clock

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def create_verification(self, admin_id: int, expiration_minutes: int | None = None) -> VerificationRequestResult:
        """Store a new passcode for admin_id and return it to the caller.

        The caller owns delivery. request_verification() is the entry point
        that also sends the code.
        """
        minutes = expiration_minutes if expiration_minutes is not None else self.expiration_minutes
        try:
            admin = self.identity.get_admin_by_id(admin_id)
            if admin is None:
                return VerificationRequestResult(success=False, message="Admin not found", error=ErrorCode.not_found)

            passcode = generate_passcode()
            issued_at = self.clock()
            expires_at = issued_at + timedelta(minutes=minutes)
            self.passcodes.create(admin_id, passcode, now_iso(expires_at), created_at=now_iso(issued_at))
        except Exception:
            logger.exception("Failed to create verification for admin %s", admin_id)
            return VerificationRequestResult(
                success=False,
                message="Failed to create verification code",
                error=ErrorCode.internal_error,
            )

        logger.info("Passcode issued for admin %s (expires in %d min)", admin_id, minutes)
        return VerificationRequestResult(
            success=True,
            message="MFA passcode generated successfully",
            passcode=passcode,
            expires_at=expires_at,
            admin_id=admin_id,
        )

    def request_verification(self, email: str) -> VerificationRequestResult:
        """Resolve the admin by email, issue a passcode and send it out-of-band."""
        try:
            admin = self.identity.get_admin_by_email(email)
        except Exception:
            logger.exception("Admin lookup failed during verification request")
            return VerificationRequestResult(
                success=False,
                message="Failed to request verification",
                error=ErrorCode.internal_error,
            )
        if admin is None:
            return VerificationRequestResult(
                success=False,
                message="Admin not found with this email",
                error=ErrorCode.not_found,
            )

        result = self.create_verification(admin.id)
        if not result.success:
            return result

        delivered = self.sender.send(admin, result.passcode, result.expires_at)
        message = "Verification code sent" if delivered else "Verification code created; delivery could not be confirmed"
        return VerificationRequestResult(
            success=True,
            message=message,
            passcode=result.passcode,
            expires_at=result.expires_at,
            admin_id=admin.id,
            delivered=delivered,
        )

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_passcode(self, email: str, passcode: str) -> VerifyPasscodeResult:
        """Consume a passcode for the admin registered under email.

        Returns success with admin_id and hotel_id, or a failure carrying
        not_found (unknown email) or invalid_or_expired (no usable record,
        or a concurrent verifier consumed it first).
        """
        try:
            admin = self.identity.get_admin_by_email(email)
            if admin is None:
                return VerifyPasscodeResult(success=False, message="Admin not found", error=ErrorCode.not_found)

            now = self.clock()
            verification = self.passcodes.find_active(admin.id, passcode, now_iso(now))
            if verification is None or not self.passcodes.mark_used(verification.id):
                logger.info("Passcode rejected for admin %s", admin.id)
                return VerifyPasscodeResult(
                    success=False,
                    message="Invalid or expired passcode",
                    error=ErrorCode.invalid_or_expired,
                )
        except Exception:
            logger.exception("Passcode verification failed")
            return VerifyPasscodeResult(
                success=False,
                message="Failed to verify passcode",
                error=ErrorCode.internal_error,
            )

        logger.info("Passcode verified for admin %s", admin.id)
        self.cleanup_stale(admin.id, now=now)
        return VerifyPasscodeResult(
            success=True,
            message="Passcode verified successfully",
            admin_id=admin.id,
            hotel_id=admin.hotel_id,
        )

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def cleanup_stale(self, admin_id: int, now: datetime | None = None) -> int:
        """Delete admin_id's used records that expired over 24 hours ago.

        Best-effort: returns the number of rows removed, or 0 if the delete
        failed (the failure is logged).
        """
        cutoff = (now or self.clock()) - STALE_USED_RETENTION
        try:
            removed = self.passcodes.delete_stale_used(admin_id, now_iso(cutoff))
        except Exception:
            logger.exception("Stale passcode cleanup failed for admin %s", admin_id)
            return 0
        if removed:
            logger.info("Removed %d stale passcode record(s) for admin %s", removed, admin_id)
        return removed
