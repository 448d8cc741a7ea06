"""
auth/guard.py -- Request authentication and hotel-scoped authorization.

Each request moves through:

  1. extract   -- token from the Authorization header       (absent   -> 401)
  2. verify    -- signature, issuer, expiry, discriminant    (invalid  -> 401)
  3. refresh   -- re-read the principal from the store       (deleted  -> 401)
  4. context   -- immutable AdminContext / GuestContext
  5. scope     -- optional hotel check                       (no access -> 403)

Step 3 is a freshness check: a token minted for an admin or guest who has
since been deleted still has a valid signature, but must not authenticate.
Every authenticated request therefore costs one repository lookup.

Failures raise AuthError subclasses (auth/errors.py). This module knows
nothing about FastAPI -- auth/dependencies.py adapts it to Depends() and
HTTPException.
"""

from __future__ import annotations

import logging

from auth.errors import AuthzDenied, InvalidOrExpired, NotFound, ValidationFailed
from auth.models import (
    AdminAuthPayload,
    AdminContext,
    GuestAuthPayload,
    GuestContext,
    HotelScope,
    PrincipalContext,
)
from auth.store import IdentityStore
from auth.tokens import TokenService, extract_token_from_header

logger = logging.getLogger("zapmenu.guard")


# ---------------------------------------------------------------------------
# Hotel id resolution
# ---------------------------------------------------------------------------


def parse_hotel_id(value) -> int | None:
    """Parse one candidate hotel id. None/"" mean absent; junk raises ValidationFailed."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationFailed("Valid hotel ID required")
    try:
        hotel_id = int(str(value).strip())
    except ValueError:
        raise ValidationFailed("Valid hotel ID required") from None
    if hotel_id <= 0:
        raise ValidationFailed("Valid hotel ID required")
    return hotel_id


def resolve_hotel_id(path_value=None, body_value=None, query_value=None) -> int | None:
    """Return the target hotel id from path, body or query, in that priority."""
    for candidate in (path_value, body_value, query_value):
        hotel_id = parse_hotel_id(candidate)
        if hotel_id is not None:
            return hotel_id
    return None


def require_hotel_id(path_value=None, body_value=None, query_value=None) -> int:
    """Like resolve_hotel_id() but a missing id is a validation error."""
    hotel_id = resolve_hotel_id(path_value, body_value, query_value)
    if hotel_id is None:
        raise ValidationFailed("Valid hotel ID required")
    return hotel_id


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------


class AccessGuard:
    """Authenticate principals from bearer tokens and authorize hotel access."""

    def __init__(self, identity: IdentityStore, tokens: TokenService) -> None:
        self.identity = identity
        self.tokens = tokens

    def _verified_payload(self, authorization: str | None):
        token = extract_token_from_header(authorization)
        if token is None:
            raise InvalidOrExpired("Authentication required")
        payload = self.tokens.verify(token)
        if payload is None:
            raise InvalidOrExpired("Invalid token")
        return payload

    def _admin_context(self, payload: AdminAuthPayload) -> AdminContext:
        admin = self.identity.get_admin_by_id(payload.admin_id)
        if admin is None:
            logger.info("Token for deleted admin %s rejected", payload.admin_id)
            raise NotFound("Admin not found", status_code=401)
        return AdminContext(
            admin_id=admin.id,
            hotel_id=payload.hotel_id,
            email=admin.email,
            name=admin.name,
            phone=admin.phone,
        )

    def _guest_context(self, payload: GuestAuthPayload) -> GuestContext:
        guest = self.identity.get_guest_by_id(payload.guest_id)
        if guest is None:
            logger.info("Token for deleted guest %s rejected", payload.guest_id)
            raise NotFound("Guest not found", status_code=401)
        return GuestContext(guest_id=guest.id, email=guest.email, name=guest.name)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate_admin(self, authorization: str | None) -> AdminContext:
        payload = self._verified_payload(authorization)
        if not isinstance(payload, AdminAuthPayload):
            raise InvalidOrExpired("Invalid token or not an admin token")
        return self._admin_context(payload)

    def authenticate_guest(self, authorization: str | None) -> GuestContext:
        payload = self._verified_payload(authorization)
        if not isinstance(payload, GuestAuthPayload):
            raise InvalidOrExpired("Invalid token or not a guest token")
        return self._guest_context(payload)

    def authenticate_any(self, authorization: str | None) -> PrincipalContext:
        """Authenticate an admin or a guest, dispatching on the payload variant."""
        payload = self._verified_payload(authorization)
        if isinstance(payload, AdminAuthPayload):
            return self._admin_context(payload)
        if isinstance(payload, GuestAuthPayload):
            return self._guest_context(payload)
        raise InvalidOrExpired("Invalid token type")

    # ------------------------------------------------------------------
    # Hotel scoping
    # ------------------------------------------------------------------

    def authorize_admin_hotel(self, admin: AdminContext, hotel_id: int | None) -> HotelScope:
        """Authorize admin for hotel_id, or for their own hotel when hotel_id is None."""
        target = hotel_id if hotel_id is not None else admin.hotel_id
        if not self.identity.admin_belongs_to_hotel(admin.admin_id, target):
            logger.info("Admin %s denied access to hotel %s", admin.admin_id, target)
            raise AuthzDenied("Access denied to this hotel")
        return HotelScope(principal=admin, hotel_id=target)

    def authorize_guest_hotel(self, guest: GuestContext, hotel_id: int | None) -> HotelScope:
        """Authorize guest for hotel_id. Guests have no default hotel."""
        if hotel_id is None:
            raise ValidationFailed("Hotel ID required")
        if not self.identity.guest_has_ordered_at_hotel(guest.guest_id, hotel_id):
            logger.info("Guest %s denied access to hotel %s", guest.guest_id, hotel_id)
            raise AuthzDenied("Access denied to this hotel")
        return HotelScope(principal=guest, hotel_id=hotel_id)
