"""
auth/tokens.py -- Signed session tokens for admins and guests.

Security design decisions:
  JWT: python-jose with HS256. A token carries one AuthPayload variant as
       camelCase claims plus iss, sub, iat and exp. Signature and expiry can
       be checked without a database round trip; the access guard adds the
       freshness lookup on top.

  Secret injection: TokenService receives the signing secret at construction
       (TokenService.from_settings() in production). There is no module-level
       secret, so tests and multiple app instances cannot leak keys into each
       other. core.config refuses to start with the insecure fallback secret
       outside DEBUG.

  verify() never raises. Any failure -- bad signature, wrong issuer, expired,
       not yet valid, malformed, unknown payload type -- returns None and logs
       a reason. The route layer turns None into 401.

  decode_unverified() is for diagnostics only. It skips the signature check
       and must never feed an authorization decision.

Layer rule: no imports from api/ or core/. from_settings() takes any object
with the Settings token fields.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.models import AdminAuthPayload, AuthPayload, GuestAuthPayload

logger = logging.getLogger("zapmenu.tokens")

DEFAULT_ISSUER = "zapmenu"
DEFAULT_EXPIRE_SECONDS = 7 * 24 * 3600
_BEARER_SCHEME = "bearer"


# ---------------------------------------------------------------------------
# Payload <-> claims mapping
# ---------------------------------------------------------------------------


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def payload_to_claims(payload: AuthPayload) -> dict:
    """Return the wire claims for a payload variant."""
    if isinstance(payload, AdminAuthPayload):
        return {"adminId": payload.admin_id, "hotelId": payload.hotel_id, "email": payload.email, "type": "admin"}
    if isinstance(payload, GuestAuthPayload):
        return {"guestId": payload.guest_id, "email": payload.email, "type": "guest"}
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


def payload_from_claims(claims: dict) -> AuthPayload | None:
    """Rebuild the payload variant named by claims["type"].

    Returns None for an unknown discriminant or a claim set that does not
    match its variant's shape.
    """
    kind = claims.get("type")
    email = claims.get("email")
    if not isinstance(email, str):
        return None
    if kind == "admin":
        admin_id, hotel_id = claims.get("adminId"), claims.get("hotelId")
        if not (_is_int(admin_id) and _is_int(hotel_id)):
            return None
        return AdminAuthPayload(admin_id=admin_id, hotel_id=hotel_id, email=email)
    if kind == "guest":
        guest_id = claims.get("guestId")
        if not _is_int(guest_id):
            return None
        return GuestAuthPayload(guest_id=guest_id, email=email)
    return None


def subject_for(payload: AuthPayload) -> str:
    if isinstance(payload, AdminAuthPayload):
        return f"admin:{payload.admin_id}"
    return f"guest:{payload.guest_id}"


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------


def extract_token_from_header(header: str | None) -> str | None:
    """Return the token from an Authorization header value.

    Accepts "Bearer <token>" (scheme is case-insensitive) or a bare token.
    Returns None when the header is missing or blank.
    """
    if not header:
        return None
    parts = header.strip().split(None, 1)
    if not parts:
        return None
    if parts[0].lower() == _BEARER_SCHEME:
        return parts[1].strip() if len(parts) == 2 else None
    return header.strip()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TokenService:
    """Mint and verify session tokens with one signing secret."""

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int = DEFAULT_EXPIRE_SECONDS,
        issuer: str = DEFAULT_ISSUER,
        algorithm: str = "HS256",
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing secret.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self.issuer = issuer
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings) -> "TokenService":
        return cls(
            secret_key=settings.jwt_secret,
            expire_seconds=settings.token_expire_seconds,
            issuer=settings.jwt_issuer,
            algorithm=settings.jwt_algorithm,
        )

    def mint(self, payload: AuthPayload, expire_seconds: int | None = None) -> str:
        """Encode payload as a signed JWT.

        Args:
            payload:        AdminAuthPayload or GuestAuthPayload.
            expire_seconds: Lifetime override. Defaults to the service lifetime.
        """
        now = datetime.now(timezone.utc)
        duration = expire_seconds if expire_seconds is not None else self.expire_seconds
        claims = payload_to_claims(payload)
        claims.update(
            {
                "iss": self.issuer,
                "sub": subject_for(payload),
                "iat": now,
                "exp": now + timedelta(seconds=duration),
            }
        )
        return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> AuthPayload | None:
        """Verify signature, issuer and expiry. Returns the payload or None."""
        if not token or not isinstance(token, str):
            return None
        try:
            claims = jwt.decode(token.strip(), self._secret_key, algorithms=[self.algorithm], issuer=self.issuer)
        except ExpiredSignatureError:
            logger.info("Token rejected: expired")
            return None
        except JWTClaimsError as e:
            reason = "not_yet_valid" if "not yet valid" in str(e) else "bad_claims"
            logger.info("Token rejected: %s", reason)
            return None
        except JWTError:
            logger.info("Token rejected: malformed or bad signature")
            return None

        payload = payload_from_claims(claims)
        if payload is None:
            logger.warning("Token rejected: unknown payload type %r", claims.get("type"))
        return payload

    def decode_unverified(self, token: str) -> dict | None:
        """Return the raw claims without checking the signature. Diagnostics only."""
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            logger.info("Token decode failed: malformed")
            return None
