"""Unit tests for auth/tokens.py -- minting, verification and header parsing.

Covers:
- Admin and guest payloads survive a mint/verify round trip with type intact
- iss and sub claims are set from the service and principal
- Tampered, expired, not-yet-valid, wrong-issuer, wrong-secret and malformed
  tokens verify to None and never raise
- Unknown payload discriminants are rejected
- decode_unverified() reads claims without a signature check
- extract_token_from_header() accepts Bearer and bare values
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import AdminAuthPayload, GuestAuthPayload
from auth.tokens import TokenService, extract_token_from_header, payload_from_claims, payload_to_claims

SECRET = "unit-test-secret-" + "k" * 32


@pytest.fixture
def svc() -> TokenService:
    return TokenService(SECRET, expire_seconds=600)


def _raw(claims: dict, secret: str = SECRET) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


class TestRoundTrip:
    def test_admin_payload_round_trip(self, svc: TokenService) -> None:
        payload = AdminAuthPayload(admin_id=1, hotel_id=7, email="a@hotel.com")
        verified = svc.verify(svc.mint(payload))
        assert verified == payload
        assert verified.type == "admin"

    def test_guest_payload_round_trip(self, svc: TokenService) -> None:
        payload = GuestAuthPayload(guest_id=42, email="g@x.com")
        verified = svc.verify(svc.mint(payload))
        assert verified == payload
        assert verified.type == "guest"

    def test_claims_carry_issuer_subject_and_expiry(self, svc: TokenService) -> None:
        token = svc.mint(AdminAuthPayload(admin_id=1, hotel_id=7, email="a@hotel.com"))
        claims = svc.decode_unverified(token)
        assert claims["iss"] == "zapmenu"
        assert claims["sub"] == "admin:1"
        assert claims["adminId"] == 1
        assert claims["hotelId"] == 7
        assert claims["type"] == "admin"
        assert claims["exp"] - claims["iat"] == 600

    def test_guest_subject(self, svc: TokenService) -> None:
        token = svc.mint(GuestAuthPayload(guest_id=5, email="g@x.com"))
        assert svc.decode_unverified(token)["sub"] == "guest:5"

    def test_default_lifetime_is_seven_days(self) -> None:
        token = TokenService(SECRET).mint(GuestAuthPayload(guest_id=5, email="g@x.com"))
        claims = jwt.get_unverified_claims(token)
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600

    def test_from_settings_uses_configured_lifetime(self) -> None:
        class _S:
            jwt_secret = SECRET
            token_expire_seconds = 120
            jwt_issuer = "zapmenu"
            jwt_algorithm = "HS256"

        assert TokenService.from_settings(_S()).expire_seconds == 120

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenService("")


class TestVerifyFailures:
    def test_tampered_payload_rejected(self, svc: TokenService) -> None:
        token = svc.mint(AdminAuthPayload(admin_id=1, hotel_id=7, email="a@hotel.com"))
        header, payload, signature = token.split(".")
        i = len(payload) // 2
        flipped = "A" if payload[i] != "A" else "B"
        tampered = ".".join([header, payload[:i] + flipped + payload[i + 1 :], signature])
        assert svc.verify(tampered) is None

    def test_wrong_secret_rejected(self, svc: TokenService) -> None:
        other = TokenService("another-secret-" + "z" * 32)
        token = other.mint(GuestAuthPayload(guest_id=1, email="g@x.com"))
        assert svc.verify(token) is None

    def test_expired_token_rejected(self, svc: TokenService, caplog) -> None:
        token = svc.mint(GuestAuthPayload(guest_id=1, email="g@x.com"), expire_seconds=-10)
        with caplog.at_level(logging.INFO, logger="zapmenu.tokens"):
            assert svc.verify(token) is None
        assert "expired" in caplog.text

    def test_not_yet_valid_token_rejected(self, svc: TokenService, caplog) -> None:
        now = datetime.now(timezone.utc)
        token = _raw(
            {
                "guestId": 1,
                "email": "g@x.com",
                "type": "guest",
                "iss": "zapmenu",
                "nbf": now + timedelta(hours=1),
                "exp": now + timedelta(hours=2),
            }
        )
        with caplog.at_level(logging.INFO, logger="zapmenu.tokens"):
            assert svc.verify(token) is None
        assert "not_yet_valid" in caplog.text

    def test_wrong_issuer_rejected(self, svc: TokenService) -> None:
        other = TokenService(SECRET, issuer="someone-else")
        assert svc.verify(other.mint(GuestAuthPayload(guest_id=1, email="g@x.com"))) is None

    @pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c", None])
    def test_malformed_token_rejected(self, svc: TokenService, token) -> None:
        assert svc.verify(token) is None

    def test_unknown_type_rejected(self, svc: TokenService) -> None:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = _raw({"superId": 1, "email": "x@x.com", "type": "superuser", "iss": "zapmenu", "exp": exp})
        assert svc.verify(token) is None

    def test_admin_type_with_guest_shape_rejected(self, svc: TokenService) -> None:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = _raw({"guestId": 1, "email": "x@x.com", "type": "admin", "iss": "zapmenu", "exp": exp})
        assert svc.verify(token) is None


class TestClaimsMapping:
    def test_payload_to_claims_uses_camel_case(self) -> None:
        claims = payload_to_claims(AdminAuthPayload(admin_id=3, hotel_id=9, email="a@b.c"))
        assert claims == {"adminId": 3, "hotelId": 9, "email": "a@b.c", "type": "admin"}

    def test_boolean_ids_rejected(self) -> None:
        assert payload_from_claims({"guestId": True, "email": "g@x.com", "type": "guest"}) is None

    def test_missing_email_rejected(self) -> None:
        assert payload_from_claims({"guestId": 1, "type": "guest"}) is None


class TestDecodeUnverified:
    def test_reads_claims_signed_with_unknown_secret(self, svc: TokenService) -> None:
        other = TokenService("another-secret-" + "z" * 32)
        claims = svc.decode_unverified(other.mint(GuestAuthPayload(guest_id=9, email="g@x.com")))
        assert claims["guestId"] == 9

    def test_garbage_returns_none(self, svc: TokenService) -> None:
        assert svc.decode_unverified("garbage") is None


class TestExtractTokenFromHeader:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc.def.ghi", "abc.def.ghi"),
            ("abc.def.ghi", "abc.def.ghi"),
            ("  Bearer   abc.def.ghi  ", "abc.def.ghi"),
            (None, None),
            ("", None),
            ("   ", None),
            ("Bearer ", None),
            ("Bearer", None),
            ("bearer   ", None),
            ("BEARER\tabc.def.ghi", "abc.def.ghi"),
        ],
    )
    def test_extract(self, header, expected) -> None:
        assert extract_token_from_header(header) == expected
