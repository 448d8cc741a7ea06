"""
auth/delivery.py -- Out-of-band delivery of MFA passcodes.

A passcode proves control of the admin's registered email, so it has to reach
the admin through that mailbox, not through the HTTP response that asked for
it. The MFA engine hands each new code to a PasscodeSender.

Senders:
  MailgunPasscodeSender -- POST to the Mailgun messages API. Used when both
      MAILGUN_API_KEY and MAILGUN_DOMAIN are configured.
  NullPasscodeSender    -- delivery disabled. Logs that nothing was sent so a
      misconfigured deployment is visible in the logs.

Security:
  The passcode itself is never written to the log, by either sender. Log
  lines carry the admin id and the outcome only.

send() returns True/False and never raises. A failed delivery is reported to
the caller as a soft failure; the verification record already exists.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

import requests

from auth.models import Admin

logger = logging.getLogger("zapmenu.delivery")

_session = requests.Session()
_session.max_redirects = 3


class PasscodeSender(Protocol):
    def send(self, admin: Admin, passcode: str, expires_at: datetime) -> bool: ...


class NullPasscodeSender:
    """Sender used when no delivery channel is configured."""

    def send(self, admin: Admin, passcode: str, expires_at: datetime) -> bool:
        logger.warning("Passcode delivery not configured; code for admin %s was not sent", admin.id)
        return False


class MailgunPasscodeSender:
    """Send passcodes by email through the Mailgun HTTP API."""

    def __init__(
        self,
        api_key: str,
        domain: str,
        base_url: str = "https://api.mailgun.net",
        from_email: str = "noreply@zapmenu.app",
        from_name: str = "ZapMenu",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.domain = domain.strip().lower()
        self.base_url = base_url.strip().rstrip("/")
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout
        self.session = session or _session

    def send(self, admin: Admin, passcode: str, expires_at: datetime) -> bool:
        url = f"{self.base_url}/v3/{self.domain}/messages"
        data = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": admin.email,
            "subject": f"[{self.from_name}] Your sign-in code",
            "text": _render_text(admin, passcode, expires_at),
        }
        try:
            resp = self.session.post(url, auth=("api", self.api_key), data=data, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Mailgun request failed for admin %s: %s", admin.id, type(e).__name__)
            return False
        if not 200 <= resp.status_code < 300:
            logger.warning("Mailgun rejected passcode email for admin %s: HTTP %d", admin.id, resp.status_code)
            return False
        logger.info("Passcode email accepted by Mailgun for admin %s", admin.id)
        return True


def _render_text(admin: Admin, passcode: str, expires_at: datetime) -> str:
    expiry = expires_at.strftime("%H:%M UTC")
    return (
        f"Hello {admin.name},\n\n"
        f"Your ZapMenu sign-in code is {passcode}. It expires at {expiry} and can be used once.\n\n"
        "If you did not try to sign in, you can ignore this email."
    )


def build_passcode_sender(settings) -> PasscodeSender:
    """Pick the sender for the given Settings."""
    if settings.mailgun_enabled:
        return MailgunPasscodeSender(
            api_key=settings.mailgun_api_key,
            domain=settings.mailgun_domain,
            base_url=settings.mailgun_base_url,
            from_email=settings.mailgun_from_email,
            from_name=settings.mailgun_from_name,
        )
    return NullPasscodeSender()
