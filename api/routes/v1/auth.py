"""
api/routes/v1/auth.py -- Admin MFA login and guest login endpoints.

Routes:
  POST /auth/admin/request-verification -- issue an MFA passcode for an admin email
  POST /auth/admin/verify               -- exchange email + passcode for a token
  GET  /auth/admin/me                   -- current admin profile (requires admin token)
  POST /auth/guest/login                -- find-or-create guest, return a token
  GET  /auth/guest/me                   -- current guest profile (requires guest token)
  GET  /auth/session                    -- current principal of either kind

Security:
  [H1] Both passcode endpoints are rate-limited per client IP (AUTH_RATE_LIMIT).
  [H2] /admin/verify answers an unknown email and a wrong code with the same
       401 so admin emails cannot be enumerated through it.
  [H3] The passcode is only echoed back when EXPOSE_PASSCODE_IN_RESPONSE is
       set. Otherwise it travels out-of-band only (auth/delivery.py).
  [H4] Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from api.models import (
    AdminMeResponse,
    AdminProfile,
    AdminTokenResponse,
    AdminVerificationRequest,
    AdminVerifyRequest,
    GuestLoginRequest,
    GuestMeResponse,
    GuestProfile,
    GuestTokenResponse,
    SessionResponse,
    VerificationRequestResponse,
)
from auth.dependencies import (
    current_admin,
    current_guest,
    current_principal,
    get_identity_store,
    get_mfa_engine,
    get_token_service,
)
from auth.errors import ErrorCode
from auth.mfa import MFAEngine
from auth.models import AdminAuthPayload, AdminContext, GuestAuthPayload, GuestContext, PrincipalContext
from auth.store import IdentityStore
from auth.tokens import TokenService
from core.config import get_settings

logger = logging.getLogger("zapmenu.api.auth")

_settings = get_settings()

# Auth policy:
# - POST /auth/admin/request-verification: public, rate-limited
# - POST /auth/admin/verify:               public, rate-limited
# - POST /auth/guest/login:                public
# - GET  /auth/admin/me:                   requires admin token (current_admin)
# - GET  /auth/guest/me:                   requires guest token (current_guest)
# - GET  /auth/session:                    requires either token (current_principal)
router = APIRouter()


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": ErrorCode.validation_error.value, "message": message})


def _internal(message: str) -> HTTPException:
    return HTTPException(status_code=500, detail={"code": ErrorCode.internal_error.value, "message": message})


# ---------------------------------------------------------------------------
# Admin MFA login
# ---------------------------------------------------------------------------


@limiter.limit(_settings.auth_rate_limit)  # [H1] must be ABOVE @router to preserve FastAPI introspection
@router.post(
    "/auth/admin/request-verification",
    response_model=VerificationRequestResponse,
    response_model_exclude_none=True,
)
def request_verification(
    request: Request,
    body: AdminVerificationRequest,
    mfa: MFAEngine = Depends(get_mfa_engine),
) -> VerificationRequestResponse:
    """Step 1: issue a passcode for the admin registered under email."""
    if not body.email:
        raise _bad_request("Email is required")

    result = mfa.request_verification(body.email)
    if result.error is ErrorCode.not_found:
        raise HTTPException(status_code=404, detail={"code": result.error.value, "message": result.message})
    if not result.success:
        raise _internal(result.message)

    return VerificationRequestResponse(
        message=result.message,
        passcode=result.passcode if request.app.state.settings.expose_passcode_in_response else None,  # [H3]
        expires_at=result.expires_at,
    )


@limiter.limit(_settings.auth_rate_limit)  # [H1]
@router.post("/auth/admin/verify", response_model=AdminTokenResponse)
def verify_passcode(
    request: Request,
    response: Response,
    body: AdminVerifyRequest,
    mfa: MFAEngine = Depends(get_mfa_engine),
    tokens: TokenService = Depends(get_token_service),
) -> AdminTokenResponse:
    """Step 2: exchange email + passcode for an admin token."""
    if not body.email or not body.passcode:
        raise _bad_request("Email and passcode are required")

    result = mfa.verify_passcode(body.email, body.passcode)
    if result.error is ErrorCode.internal_error:
        raise _internal(result.message)
    if not result.success:
        # [H2] not_found and invalid_or_expired look identical to the caller
        raise HTTPException(
            status_code=401,
            detail={"code": ErrorCode.invalid_or_expired.value, "message": "Invalid or expired passcode"},
        )

    token = tokens.mint(AdminAuthPayload(admin_id=result.admin_id, hotel_id=result.hotel_id, email=body.email))
    response.headers["Cache-Control"] = "no-store"  # [H4]
    return AdminTokenResponse(
        message="Authentication successful",
        token=token,
        admin_id=result.admin_id,
        hotel_id=result.hotel_id,
    )


@router.get("/auth/admin/me", response_model=AdminMeResponse)
def admin_me(admin: AdminContext = Depends(current_admin)) -> AdminMeResponse:
    """Return the authenticated admin's current profile."""
    return AdminMeResponse(admin=AdminProfile.from_context(admin))


# ---------------------------------------------------------------------------
# Guest login
# ---------------------------------------------------------------------------


@router.post("/auth/guest/login", response_model=GuestTokenResponse)
def guest_login(
    response: Response,
    body: GuestLoginRequest,
    identity: IdentityStore = Depends(get_identity_store),
    tokens: TokenService = Depends(get_token_service),
) -> GuestTokenResponse:
    """Log a guest in by email, creating the record on first use.

    A returning guest's stored name is replaced by the name supplied here
    when it differs.
    """
    if not body.email or not body.name:
        raise _bad_request("Email and name are required")

    try:
        guest, created = identity.find_or_create_guest(body.email, body.name)
    except SQLAlchemyError as e:
        logger.exception("Guest find-or-create failed")
        raise _internal("Failed to authenticate guest") from e
    if created:
        logger.info("Guest %s created", guest.id)

    token = tokens.mint(GuestAuthPayload(guest_id=guest.id, email=body.email))
    response.headers["Cache-Control"] = "no-store"  # [H4]
    return GuestTokenResponse(message="Authentication successful", token=token, guest_id=guest.id)


@router.get("/auth/guest/me", response_model=GuestMeResponse)
def guest_me(guest: GuestContext = Depends(current_guest)) -> GuestMeResponse:
    """Return the authenticated guest's current profile."""
    return GuestMeResponse(guest=GuestProfile.from_context(guest))


# ---------------------------------------------------------------------------
# Either principal
# ---------------------------------------------------------------------------


@router.get("/auth/session", response_model=SessionResponse, response_model_exclude_none=True)
def session(principal: PrincipalContext = Depends(current_principal)) -> SessionResponse:
    """Describe whoever holds the presented token."""
    if isinstance(principal, AdminContext):
        return SessionResponse(type="admin", admin=AdminProfile.from_context(principal))
    return SessionResponse(type="guest", guest=GuestProfile.from_context(principal))
