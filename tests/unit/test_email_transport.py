"""Tests for the SMTP and Resend delivery transports."""
import json
import smtplib

import pytest
import requests

from contact_relay.core import email as email_module
from contact_relay.core.config import settings
from contact_relay.core.email import (
    DeliveryFailure,
    EmailDeliveryError,
    OutboundMessage,
    ResendTransport,
    SmtpTransport,
    build_transport,
)

MESSAGE = OutboundMessage(
    sender="Starkville Tech <relay@starkville.tech>",
    to="admin@starkville.tech",
    reply_to="jane@example.com",
    subject="New Contact Form Message from Jane Doe",
    text="Name: Jane Doe",
    html="<p>Name: Jane Doe</p>",
)


class FakeSMTP:
    instances = []
    login_error = None
    send_error = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.calls.append("quit")
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))
        if FakeSMTP.login_error is not None:
            raise FakeSMTP.login_error

    def send_message(self, message):
        self.calls.append(("send_message", message))
        if FakeSMTP.send_error is not None:
            raise FakeSMTP.send_error

    def noop(self):
        self.calls.append("noop")
        return (250, b"OK")


@pytest.fixture(autouse=True)
def _fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.login_error = None
    FakeSMTP.send_error = None
    monkeypatch.setattr(email_module.smtplib, "SMTP_SSL", FakeSMTP)
    monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)


def make_smtp(secure=True):
    return SmtpTransport(
        host="smtp.gmail.com",
        port=465 if secure else 587,
        user="relay@starkville.tech",
        password="app-password",
        secure=secure,
        timeout=5,
    )


def make_response(status_code, body):
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(body).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    return response


class TestSmtpTransport:
    @pytest.mark.asyncio
    async def test_send_logs_in_and_sends_over_implicit_tls(self):
        await make_smtp().send(MESSAGE)

        server = FakeSMTP.instances[0]
        assert (server.host, server.port, server.timeout) == ("smtp.gmail.com", 465, 5)
        assert "starttls" not in server.calls
        assert ("login", "relay@starkville.tech", "app-password") in server.calls
        sent = [c for c in server.calls if isinstance(c, tuple) and c[0] == "send_message"]
        assert len(sent) == 1
        assert sent[0][1]["Reply-To"] == "jane@example.com"

    @pytest.mark.asyncio
    async def test_send_uses_starttls_when_not_secure(self):
        await make_smtp(secure=False).send(MESSAGE)

        server = FakeSMTP.instances[0]
        assert server.calls[0] == "starttls"

    @pytest.mark.asyncio
    async def test_auth_failure_is_classified(self):
        FakeSMTP.login_error = smtplib.SMTPAuthenticationError(535, b"Username and Password not accepted")

        with pytest.raises(EmailDeliveryError) as exc_info:
            await make_smtp().send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.AUTH
        assert "535" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_recipient_refused_is_envelope_error(self):
        FakeSMTP.send_error = smtplib.SMTPRecipientsRefused(
            {"admin@starkville.tech": (550, b"No such user")}
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            await make_smtp().send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.ENVELOPE

    @pytest.mark.asyncio
    async def test_authentication_required_reply_is_auth_error(self):
        FakeSMTP.send_error = smtplib.SMTPSenderRefused(
            530, b"5.7.0 Authentication Required", "relay@starkville.tech"
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            await make_smtp().send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.AUTH
        assert "530" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_sender_refused_is_not_blamed_on_submitter(self):
        FakeSMTP.send_error = smtplib.SMTPSenderRefused(
            553, b"5.7.1 Sender address rejected", "relay@starkville.tech"
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            await make_smtp().send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.UNKNOWN

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user,password",
        [(None, None), ("relay@starkville.tech", None), (None, "app-password")],
    )
    async def test_send_without_credentials_is_auth_error(self, user, password):
        smtp = SmtpTransport(host="smtp.gmail.com", port=465, user=user, password=password)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await smtp.send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.AUTH
        assert FakeSMTP.instances == []

    @pytest.mark.asyncio
    async def test_verify_without_credentials_is_auth_error(self):
        smtp = SmtpTransport(host="smtp.gmail.com", port=465, user=None, password=None)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await smtp.verify()

        assert exc_info.value.kind == DeliveryFailure.AUTH
        assert "not configured" in exc_info.value.detail
        assert FakeSMTP.instances == []

    @pytest.mark.asyncio
    async def test_connection_refused_is_connection_error(self, monkeypatch):
        def _refuse(*args, **kwargs):
            raise ConnectionRefusedError("connection refused")

        monkeypatch.setattr(email_module.smtplib, "SMTP_SSL", _refuse)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await make_smtp().send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.CONNECTION

    @pytest.mark.asyncio
    async def test_verify_authenticates_without_sending(self):
        await make_smtp().verify()

        server = FakeSMTP.instances[0]
        assert ("login", "relay@starkville.tech", "app-password") in server.calls
        assert "noop" in server.calls
        assert not any(isinstance(c, tuple) and c[0] == "send_message" for c in server.calls)


class TestResendTransport:
    @pytest.fixture()
    def calls(self, monkeypatch):
        recorded = []
        responses = []

        def _request(method, url, **kwargs):
            recorded.append((method, url, kwargs))
            result = responses.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(email_module.requests, "request", _request)
        return recorded, responses

    def make_transport(self, api_key="re_test_key_123"):
        return ResendTransport(api_key=api_key, api_url="https://api.resend.com/", timeout=5)

    @pytest.mark.asyncio
    async def test_send_posts_message(self, calls):
        recorded, responses = calls
        responses.append(make_response(200, {"id": "49a3999c"}))

        await self.make_transport().send(MESSAGE)

        method, url, kwargs = recorded[0]
        assert (method, url) == ("POST", "https://api.resend.com/emails")
        assert kwargs["headers"]["Authorization"] == "Bearer re_test_key_123"
        assert kwargs["timeout"] == 5
        assert kwargs["json"]["to"] == ["admin@starkville.tech"]
        assert kwargs["json"]["reply_to"] == "jane@example.com"
        assert kwargs["json"]["html"] == "<p>Name: Jane Doe</p>"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,body,kind",
        [
            (401, {"name": "missing_api_key", "message": "Missing API key"}, DeliveryFailure.AUTH),
            (403, {"name": "invalid_api_key", "message": "API key is invalid"}, DeliveryFailure.AUTH),
            (422, {"name": "validation_error", "message": "Invalid `to` field"}, DeliveryFailure.ENVELOPE),
            (500, {"name": "internal_server_error", "message": "Unexpected error"}, DeliveryFailure.UNKNOWN),
        ],
    )
    async def test_send_errors_are_classified(self, calls, status_code, body, kind):
        _, responses = calls
        responses.append(make_response(status_code, body))

        with pytest.raises(EmailDeliveryError) as exc_info:
            await self.make_transport().send(MESSAGE)

        assert exc_info.value.kind == kind
        assert str(status_code) in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_network_failure_is_connection_error(self, calls):
        _, responses = calls
        responses.append(requests.ConnectionError("Name or service not known"))

        with pytest.raises(EmailDeliveryError) as exc_info:
            await self.make_transport().send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.CONNECTION

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_before_request(self, calls):
        recorded, _ = calls

        with pytest.raises(EmailDeliveryError) as exc_info:
            await self.make_transport(api_key=None).send(MESSAGE)

        assert exc_info.value.kind == DeliveryFailure.AUTH
        assert recorded == []

    @pytest.mark.asyncio
    async def test_verify_accepts_sending_only_key(self, calls):
        recorded, responses = calls
        responses.append(
            make_response(401, {"name": "restricted_api_key", "message": "This API key is restricted"})
        )

        await self.make_transport().verify()

        assert recorded[0][:2] == ("GET", "https://api.resend.com/domains")

    @pytest.mark.asyncio
    async def test_verify_rejects_invalid_key(self, calls):
        _, responses = calls
        responses.append(make_response(403, {"name": "invalid_api_key", "message": "API key is invalid"}))

        with pytest.raises(EmailDeliveryError) as exc_info:
            await self.make_transport().verify()

        assert exc_info.value.kind == DeliveryFailure.AUTH


def test_build_transport_follows_provider(monkeypatch):
    assert isinstance(build_transport(settings), SmtpTransport)

    monkeypatch.setattr(settings, "EMAIL_PROVIDER", "resend")
    assert isinstance(build_transport(settings), ResendTransport)
