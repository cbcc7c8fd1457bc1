"""
Tests for SMTP delivery and the SMTP-backed mail transport
"""
import smtplib

import pytest

from vitalwatch.models import Setting
from vitalwatch.services import email_sender
from vitalwatch.services.dispatcher import Digest, SmtpMailTransport
from vitalwatch.services.email_sender import EmailConfig, EmailSenderService


class FakeSMTP:
    """Stand-in for smtplib.SMTP that records the conversation."""
    instances = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def sendmail(self, from_addr, recipients, message):
        if FakeSMTP.fail_with:
            raise FakeSMTP.fail_with
        self.calls.append(("sendmail", from_addr, tuple(recipients)))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(email_sender.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def config(**overrides):
    values = dict(host="smtp.example.com", port=587, username="bot", password="pw", from_address="bot@example.com")
    values.update(overrides)
    return EmailConfig(**values)


@pytest.mark.asyncio
async def test_sends_with_starttls_and_login(fake_smtp):
    ok = await EmailSenderService().send_email(config(), "a@example.com, b@example.com", "Subject", "Body")

    assert ok is True
    server = fake_smtp.instances[0]
    assert server.calls[0] == "starttls"
    assert ("login", "bot") in server.calls
    assert server.calls[-1] == ("sendmail", "bot@example.com", ("a@example.com", "b@example.com"))


@pytest.mark.asyncio
async def test_missing_host_or_recipient_fails_without_connecting(fake_smtp):
    sender = EmailSenderService()

    assert await sender.send_email(config(host=""), "a@example.com", "S", "B") is False
    assert await sender.send_email(config(), " , ", "S", "B") is False
    assert fake_smtp.instances == []


@pytest.mark.asyncio
async def test_smtp_error_is_reported_as_failure(fake_smtp):
    fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({"a@example.com": (550, b"no such user")})

    ok = await EmailSenderService().send_email(config(), "a@example.com", "S", "B")

    assert ok is False


@pytest.mark.asyncio
async def test_transport_reads_smtp_settings(session, session_factory, fake_smtp):
    session.add_all([
        Setting(key="smtp_host", value="mail.internal"),
        Setting(key="smtp_port", value="2525"),
        Setting(key="smtp_use_tls", value="0"),
        Setting(key="digest_email_from", value="digests@example.com"),
    ])
    await session.commit()

    ok = await SmtpMailTransport(session_factory).send("owner@example.com", Digest("Weekly", "Body", 0))

    assert ok is True
    server = fake_smtp.instances[0]
    assert (server.host, server.port) == ("mail.internal", 2525)
    assert "starttls" not in server.calls
    assert server.calls[-1][1] == "digests@example.com"
