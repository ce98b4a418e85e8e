from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from contact_relay.api.deps import get_email_transport
from contact_relay.core.config import settings
from contact_relay.core.email import OutboundMessage
from contact_relay.main import app

TEST_EMAIL_USER = "relay@starkville.tech"
TEST_EMAIL_PASS = "smtp-app-password-9f2c"


class FakeTransport:
    """In-memory delivery collaborator that records every dispatch."""

    name = "fake"

    def __init__(self):
        self.sent: List[OutboundMessage] = []
        self.verify_calls = 0
        self.send_error: Optional[Exception] = None
        self.verify_error: Optional[Exception] = None

    async def send(self, message: OutboundMessage) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)

    async def verify(self) -> None:
        self.verify_calls += 1
        if self.verify_error is not None:
            raise self.verify_error


# -----------------------------------------------------------------------------
# Settings Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _email_settings(monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_PROVIDER", "smtp", raising=False)
    monkeypatch.setattr(settings, "EMAIL_USER", TEST_EMAIL_USER, raising=False)
    monkeypatch.setattr(settings, "EMAIL_PASS", SecretStr(TEST_EMAIL_PASS), raising=False)
    monkeypatch.setattr(settings, "EMAIL_FROM", None, raising=False)
    monkeypatch.setattr(settings, "RESEND_API_KEY", None, raising=False)
    monkeypatch.setattr(settings, "CONTACT_EMAIL", "admin@starkville.tech", raising=False)
    monkeypatch.setattr(settings, "SENDER_NAME", "Starkville Tech", raising=False)
    monkeypatch.setattr(settings, "CONTACT_FORM", "basic", raising=False)
    monkeypatch.setattr(settings, "EMAIL_HTML", True, raising=False)
    monkeypatch.setattr(settings, "DEBUG", False, raising=False)


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="function")
def transport():
    return FakeTransport()


@pytest.fixture(scope="function")
def client(transport):
    """
    TestClient with the delivery transport replaced by an in-memory fake.
    """
    app.dependency_overrides[get_email_transport] = lambda: transport

    # Using 'with' context manager to trigger lifespan events (startup/shutdown)
    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
