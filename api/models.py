"""
API request and response models for ZapMenu auth endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format: JSON keys are camelCase (hotelId, expiresAt) to match the
existing frontend. Fields are snake_case in Python and aliased on output.

Required request fields are declared Optional on purpose: a missing email or
passcode is reported by the handler as 400 validation_error with a specific
message, rather than as a generic schema failure.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from auth.models import AdminContext, GuestContext

# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)


class _Response(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class AdminVerificationRequest(_Request):
    """Request body for POST /auth/admin/request-verification."""

    email: Optional[str] = None


class AdminVerifyRequest(_Request):
    """Request body for POST /auth/admin/verify."""

    email: Optional[str] = None
    passcode: Optional[str] = None

    @field_validator("passcode", mode="before")
    @classmethod
    def passcode_as_string(cls, v):
        """Accept a numeric JSON passcode; comparison is always on the string form."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class GuestLoginRequest(_Request):
    """Request body for POST /auth/guest/login."""

    email: Optional[str] = None
    name: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models -- auth
# ---------------------------------------------------------------------------


class VerificationRequestResponse(_Response):
    """Response for POST /auth/admin/request-verification.

    passcode is only populated when EXPOSE_PASSCODE_IN_RESPONSE is enabled;
    the route excludes None fields so the key is absent otherwise.
    """

    message: str
    passcode: Optional[str] = None
    expires_at: datetime


class AdminTokenResponse(_Response):
    message: str
    token: str
    admin_id: int
    hotel_id: int


class GuestTokenResponse(_Response):
    message: str
    token: str
    guest_id: int


class AdminProfile(_Response):
    id: int
    name: str
    email: str
    phone: str
    hotel_id: int

    @classmethod
    def from_context(cls, ctx: AdminContext) -> "AdminProfile":
        return cls(id=ctx.admin_id, name=ctx.name, email=ctx.email, phone=ctx.phone, hotel_id=ctx.hotel_id)


class GuestProfile(_Response):
    id: int
    name: str
    email: str

    @classmethod
    def from_context(cls, ctx: GuestContext) -> "GuestProfile":
        return cls(id=ctx.guest_id, name=ctx.name, email=ctx.email)


class AdminMeResponse(_Response):
    admin: AdminProfile


class GuestMeResponse(_Response):
    guest: GuestProfile


class SessionResponse(_Response):
    """Response for GET /auth/session -- exactly one of admin/guest is set."""

    type: str
    admin: Optional[AdminProfile] = None
    guest: Optional[GuestProfile] = None


# ---------------------------------------------------------------------------
# Response models -- hotels
# ---------------------------------------------------------------------------


class HotelInfo(_Response):
    id: int
    name: str


class HotelResponse(_Response):
    hotel: HotelInfo


class AdminHotelAccessResponse(_Response):
    hotel_id: int
    admin_id: int


class GuestHotelAccessResponse(_Response):
    hotel_id: int
    guest_id: int


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
