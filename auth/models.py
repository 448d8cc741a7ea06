"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these classes only own domain shape.

Principals:
  Admin and Guest are the two principal kinds. Admins are created out-of-band
  and belong to exactly one hotel. Guests are created on first login.

Token payloads:
  AdminAuthPayload and GuestAuthPayload form a tagged variant (AuthPayload).
  The ``type`` field is the discriminant; it is fixed per class so a payload
  can never carry the wrong tag.

Authenticated context:
  AdminContext / GuestContext / HotelScope are the immutable values the
  access guard hands to route handlers. They merge the token claims with the
  principal's current repository record.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union


@dataclass
class Hotel:
    name: str
    id: int | None = None
    created_at: str | None = None


@dataclass
class Admin:
    """An administrator of one hotel. Read-only to the auth core."""

    name: str
    email: str
    phone: str
    hotel_id: int
    id: int | None = None
    hotel_name: str | None = None  # joined from hotels on lookup
    created_at: str | None = None


@dataclass
class Guest:
    name: str
    email: str
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class AdminVerification:
    """A one-time MFA passcode issued to an admin.

    Lifecycle: created unused; flipped to used exactly once on successful
    verification; deleted once used and expired for more than 24 hours.
    """

    admin_id: int
    passcode: str
    expires_at: str  # ISO 8601 UTC
    used: bool = False
    id: int | None = None
    created_at: str | None = None


# ---------------------------------------------------------------------------
# Token payloads (tagged variant)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdminAuthPayload:
    admin_id: int
    hotel_id: int
    email: str
    type: Literal["admin"] = field(default="admin", init=False)


@dataclass(frozen=True)
class GuestAuthPayload:
    guest_id: int
    email: str
    type: Literal["guest"] = field(default="guest", init=False)


AuthPayload = Union[AdminAuthPayload, GuestAuthPayload]


# ---------------------------------------------------------------------------
# Authenticated request context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdminContext:
    admin_id: int
    hotel_id: int
    email: str
    name: str
    phone: str
    type: Literal["admin"] = field(default="admin", init=False)


@dataclass(frozen=True)
class GuestContext:
    guest_id: int
    email: str
    name: str
    type: Literal["guest"] = field(default="guest", init=False)


PrincipalContext = Union[AdminContext, GuestContext]


@dataclass(frozen=True)
class HotelScope:
    """A principal that has been authorized for one hotel."""

    principal: PrincipalContext
    hotel_id: int
