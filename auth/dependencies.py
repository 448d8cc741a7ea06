"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Adapts auth/guard.AccessGuard to FastAPI:

  current_admin / current_guest / current_principal
      Authenticate from the Authorization header ("Bearer <token>" or a bare
      token). Return an immutable AdminContext / GuestContext that route
      handlers receive as a parameter -- nothing is attached to request.state.

  admin_hotel_scope / guest_hotel_scope
      Authenticate, then authorize a target hotel read from the path
      ({hotel_id}), the JSON body ("hotelId") or the query string
      (?hotelId=), in that order. Admins default to their own hotel; guests
      must name one.

  hotel_id_param
      Public endpoints that only need a valid hotel id.

Failure mapping:
  AuthError subclasses become HTTPException with {"code", "message"} detail
  (401/400/403). Anything else raised while authenticating is logged and
  becomes a 500 "Authentication failed" -- a lookup failure must never fall
  through to anonymous access.

Layer rule: auth/dependencies.py may import from fastapi because it is part of
the dependency injection system. No imports from api/.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from auth.errors import AuthError
from auth.guard import AccessGuard, require_hotel_id, resolve_hotel_id
from auth.mfa import MFAEngine
from auth.models import AdminContext, GuestContext, HotelScope, PrincipalContext
from auth.store import IdentityStore
from auth.tokens import TokenService

logger = logging.getLogger("zapmenu.guard")


# ---------------------------------------------------------------------------
# Service accessors (wired in api/main.py lifespan)
# ---------------------------------------------------------------------------


def get_identity_store(request: Request) -> IdentityStore:
    return request.app.state.identity_store


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_mfa_engine(request: Request) -> MFAEngine:
    return request.app.state.mfa


def get_access_guard(request: Request) -> AccessGuard:
    return request.app.state.guard


def _guarded(step, *args, failure_message: str = "Authentication failed"):
    """Run one guard step, translating failures to HTTPException.

    failure_message is what the client sees when the step fails unexpectedly.
    """
    try:
        return step(*args)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from e
    except Exception as e:
        logger.exception("%s unexpectedly", failure_message)
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": failure_message},
        ) from e


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def current_admin(request: Request, guard: AccessGuard = Depends(get_access_guard)) -> AdminContext:
    """Require an admin token for an admin that still exists. 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/admin-only")
        def route(admin: AdminContext = Depends(current_admin)): ...
    """
    return _guarded(guard.authenticate_admin, request.headers.get("Authorization"))


def current_guest(request: Request, guard: AccessGuard = Depends(get_access_guard)) -> GuestContext:
    return _guarded(guard.authenticate_guest, request.headers.get("Authorization"))


def current_principal(request: Request, guard: AccessGuard = Depends(get_access_guard)) -> PrincipalContext:
    """Accept either principal kind."""
    return _guarded(guard.authenticate_any, request.headers.get("Authorization"))


# ---------------------------------------------------------------------------
# Hotel scoping
# ---------------------------------------------------------------------------


async def _hotel_id_candidates(request: Request) -> tuple:
    """Return the raw (path, body, query) hotel id values for this request."""
    path_value = request.path_params.get("hotel_id")
    body_value = None
    if "application/json" in request.headers.get("content-type", ""):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            body_value = body.get("hotelId")
    query_value = request.query_params.get("hotelId")
    return path_value, body_value, query_value


async def admin_hotel_scope(
    request: Request,
    admin: AdminContext = Depends(current_admin),
    guard: AccessGuard = Depends(get_access_guard),
) -> HotelScope:
    """Authorize the admin for the requested hotel, defaulting to their own."""
    candidates = await _hotel_id_candidates(request)
    hotel_id = _guarded(resolve_hotel_id, *candidates)
    return await run_in_threadpool(
        _guarded, guard.authorize_admin_hotel, admin, hotel_id, failure_message="Authorization failed"
    )


async def guest_hotel_scope(
    request: Request,
    guest: GuestContext = Depends(current_guest),
    guard: AccessGuard = Depends(get_access_guard),
) -> HotelScope:
    """Authorize the guest for the requested hotel. 400 if none is named."""
    candidates = await _hotel_id_candidates(request)
    hotel_id = _guarded(resolve_hotel_id, *candidates)
    return await run_in_threadpool(
        _guarded, guard.authorize_guest_hotel, guest, hotel_id, failure_message="Authorization failed"
    )


async def hotel_id_param(request: Request) -> int:
    """Require a valid hotel id without authenticating anyone."""
    candidates = await _hotel_id_candidates(request)
    return _guarded(require_hotel_id, *candidates)
