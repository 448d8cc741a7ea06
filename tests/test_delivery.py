"""Tests for auth/delivery.py -- Mailgun and null passcode senders.

The Mailgun sender is exercised against a stub requests.Session so no
network traffic leaves the test process.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest
import requests

from auth.delivery import MailgunPasscodeSender, NullPasscodeSender, build_passcode_sender
from auth.models import Admin

ADMIN = Admin(name="Ana Admin", email="ana@seaside.example", phone="+15550100", hotel_id=1, id=3)
EXPIRES = datetime(2026, 3, 1, 12, 10, tzinfo=timezone.utc)


class _Resp:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class StubSession:
    def __init__(self, status_code: int = 200, exc: Exception | None = None) -> None:
        self.status_code = status_code
        self.exc = exc
        self.calls: list[dict] = []

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        return _Resp(self.status_code)


def _sender(session: StubSession) -> MailgunPasscodeSender:
    return MailgunPasscodeSender(
        api_key="key-abc",
        domain=" MG.Example.COM ",
        base_url="https://api.eu.mailgun.net/",
        from_email="login@zapmenu.app",
        from_name="ZapMenu",
        session=session,
    )


class TestMailgunSender:
    def test_posts_message(self):
        session = StubSession()
        assert _sender(session).send(ADMIN, "482913", EXPIRES) is True

        call = session.calls[0]
        assert call["url"] == "https://api.eu.mailgun.net/v3/mg.example.com/messages"
        assert call["auth"] == ("api", "key-abc")
        assert call["data"]["to"] == "ana@seaside.example"
        assert call["data"]["from"] == "ZapMenu <login@zapmenu.app>"
        assert "482913" in call["data"]["text"]
        assert "12:10 UTC" in call["data"]["text"]
        assert call["timeout"] == 10.0

    @pytest.mark.parametrize("status", [400, 401, 500, 302])
    def test_non_2xx_is_soft_failure(self, status):
        assert _sender(StubSession(status_code=status)).send(ADMIN, "482913", EXPIRES) is False

    def test_network_error_is_soft_failure(self):
        session = StubSession(exc=requests.ConnectionError("refused"))
        assert _sender(session).send(ADMIN, "482913", EXPIRES) is False

    def test_passcode_never_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="zapmenu.delivery"):
            _sender(StubSession()).send(ADMIN, "482913", EXPIRES)
            _sender(StubSession(status_code=500)).send(ADMIN, "482913", EXPIRES)
            _sender(StubSession(exc=requests.Timeout("slow"))).send(ADMIN, "482913", EXPIRES)
        assert caplog.records
        assert "482913" not in caplog.text


class TestNullSender:
    def test_reports_not_delivered(self, caplog):
        with caplog.at_level(logging.WARNING, logger="zapmenu.delivery"):
            assert NullPasscodeSender().send(ADMIN, "482913", EXPIRES) is False
        assert "not configured" in caplog.text
        assert "482913" not in caplog.text


class TestBuildSender:
    class _Settings:
        mailgun_api_key = ""
        mailgun_domain = ""
        mailgun_base_url = "https://api.mailgun.net"
        mailgun_from_email = "noreply@zapmenu.app"
        mailgun_from_name = "ZapMenu"

        @property
        def mailgun_enabled(self):
            return bool(self.mailgun_api_key and self.mailgun_domain)

    def test_disabled_without_credentials(self):
        assert isinstance(build_passcode_sender(self._Settings()), NullPasscodeSender)

    def test_mailgun_when_configured(self):
        settings = self._Settings()
        settings.mailgun_api_key = "key-abc"
        settings.mailgun_domain = "mg.example.com"
        sender = build_passcode_sender(settings)
        assert isinstance(sender, MailgunPasscodeSender)
        assert sender.domain == "mg.example.com"
