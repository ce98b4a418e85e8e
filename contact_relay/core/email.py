from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from enum import Enum
from typing import Optional, Protocol

import requests

from contact_relay.core.config import Settings

logger = logging.getLogger(__name__)


class DeliveryFailure(str, Enum):
    AUTH = "auth"
    ENVELOPE = "envelope"
    CONNECTION = "connection"
    UNKNOWN = "unknown"


class EmailDeliveryError(Exception):
    """Raised by a transport when the provider rejects or cannot take a message."""

    def __init__(self, kind: DeliveryFailure, detail: str):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}")


@dataclass(frozen=True)
class OutboundMessage:
    sender: str
    to: str
    reply_to: str
    subject: str
    text: str
    html: Optional[str] = None

    def to_email_message(self) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = self.to
        msg["Reply-To"] = self.reply_to
        msg["Subject"] = self.subject
        msg.set_content(self.text)
        if self.html:
            msg.add_alternative(self.html, subtype="html")
        return msg


class EmailTransport(Protocol):
    name: str

    async def send(self, message: OutboundMessage) -> None:
        ...

    async def verify(self) -> None:
        ...


# =============================================================================
# SMTP
# =============================================================================


def _smtp_detail(exc: Exception) -> str:
    if isinstance(exc, smtplib.SMTPResponseException):
        error = exc.smtp_error
        if isinstance(error, bytes):
            error = error.decode("utf-8", errors="replace")
        return f"{exc.smtp_code} {error}"
    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        codes = ", ".join(str(code) for code, _ in exc.recipients.values())
        return f"recipients refused ({codes})"
    return str(exc) or type(exc).__name__


# 530 authentication required, 534 mechanism too weak, 535 credentials rejected
SMTP_AUTH_CODES = {530, 534, 535}


def classify_smtp_error(exc: Exception) -> EmailDeliveryError:
    # smtplib exceptions derive from OSError, so order matters here.
    if isinstance(exc, (smtplib.SMTPAuthenticationError, smtplib.SMTPNotSupportedError)):
        kind = DeliveryFailure.AUTH
    elif (
        isinstance(exc, smtplib.SMTPResponseException)
        and exc.smtp_code in SMTP_AUTH_CODES
    ):
        kind = DeliveryFailure.AUTH
    elif isinstance(exc, smtplib.SMTPRecipientsRefused):
        kind = DeliveryFailure.ENVELOPE
    elif isinstance(exc, smtplib.SMTPSenderRefused):
        # The refused sender is our own From address, not the submitter's.
        kind = DeliveryFailure.UNKNOWN
    elif isinstance(exc, (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected)):
        kind = DeliveryFailure.CONNECTION
    elif isinstance(exc, smtplib.SMTPException):
        kind = DeliveryFailure.UNKNOWN
    elif isinstance(exc, OSError):
        kind = DeliveryFailure.CONNECTION
    else:
        kind = DeliveryFailure.UNKNOWN
    return EmailDeliveryError(kind, _smtp_detail(exc))


class SmtpTransport:
    """Delivers messages through an authenticated SMTP account."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        user: Optional[str] = None,
        password: Optional[str] = None,
        secure: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.secure = secure
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpTransport":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.EMAIL_USER,
            password=(
                settings.EMAIL_PASS.get_secret_value() if settings.EMAIL_PASS else None
            ),
            secure=settings.SMTP_SECURE,
            timeout=settings.EMAIL_TIMEOUT,
        )

    def _open(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def _require_credentials(self) -> None:
        if not (self.user and self.password):
            raise EmailDeliveryError(
                DeliveryFailure.AUTH, "EMAIL_USER/EMAIL_PASS are not configured"
            )

    def _prepare(self, server: smtplib.SMTP) -> None:
        if not self.secure:
            server.starttls()
        server.login(self.user, self.password)

    def _send_sync(self, message: EmailMessage) -> None:
        with self._open() as server:
            self._prepare(server)
            server.send_message(message)

    def _verify_sync(self) -> None:
        with self._open() as server:
            self._prepare(server)
            server.noop()

    async def send(self, message: OutboundMessage) -> None:
        self._require_credentials()
        try:
            await asyncio.to_thread(self._send_sync, message.to_email_message())
        except Exception as exc:
            raise classify_smtp_error(exc) from exc

    async def verify(self) -> None:
        self._require_credentials()
        try:
            await asyncio.to_thread(self._verify_sync)
        except Exception as exc:
            raise classify_smtp_error(exc) from exc


# =============================================================================
# TRANSACTIONAL EMAIL API (Resend)
# =============================================================================

_AUTH_ERROR_NAMES = {"missing_api_key", "invalid_api_key", "restricted_api_key"}
_ENVELOPE_ERROR_NAMES = {"validation_error", "invalid_from_address", "invalid_to_address"}


def _response_error(response: requests.Response) -> tuple:
    try:
        body = response.json()
    except ValueError:
        return "", response.text[:200]
    if not isinstance(body, dict):
        return "", str(body)[:200]
    return str(body.get("name") or ""), str(body.get("message") or "")


def classify_api_response(response: requests.Response) -> EmailDeliveryError:
    name, message = _response_error(response)
    if response.status_code in (401, 403) or name in _AUTH_ERROR_NAMES:
        kind = DeliveryFailure.AUTH
    elif response.status_code == 422 or name in _ENVELOPE_ERROR_NAMES:
        kind = DeliveryFailure.ENVELOPE
    else:
        kind = DeliveryFailure.UNKNOWN
    detail = f"HTTP {response.status_code}"
    if name:
        detail += f" {name}"
    if message:
        detail += f": {message}"
    return EmailDeliveryError(kind, detail)


class ResendTransport:
    """Delivers messages through the Resend REST API."""

    name = "resend"

    def __init__(self, api_key: Optional[str], api_url: str, timeout: float = 10.0):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendTransport":
        return cls(
            api_key=(
                settings.RESEND_API_KEY.get_secret_value()
                if settings.RESEND_API_KEY
                else None
            ),
            api_url=settings.RESEND_API_URL,
            timeout=settings.EMAIL_TIMEOUT,
        )

    def _headers(self) -> dict:
        if not self.api_key:
            raise EmailDeliveryError(DeliveryFailure.AUTH, "RESEND_API_KEY is not configured")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _payload(message: OutboundMessage) -> dict:
        payload = {
            "from": message.sender,
            "to": [message.to],
            "reply_to": message.reply_to,
            "subject": message.subject,
            "text": message.text,
        }
        if message.html:
            payload["html"] = message.html
        return payload

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            return requests.request(
                method,
                f"{self.api_url}{path}",
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise EmailDeliveryError(
                DeliveryFailure.CONNECTION, str(exc) or type(exc).__name__
            ) from exc

    def _send_sync(self, message: OutboundMessage) -> None:
        response = self._request("POST", "/emails", json=self._payload(message))
        if response.status_code >= 400:
            raise classify_api_response(response)
        logger.debug("resend accepted message id=%s", _message_id(response))

    def _verify_sync(self) -> None:
        response = self._request("GET", "/domains")
        if response.status_code < 400:
            return
        error = classify_api_response(response)
        # Sending-only keys cannot list domains but are otherwise valid.
        if "restricted_api_key" in error.detail:
            return
        raise error

    async def send(self, message: OutboundMessage) -> None:
        await asyncio.to_thread(self._send_sync, message)

    async def verify(self) -> None:
        await asyncio.to_thread(self._verify_sync)


def _message_id(response: requests.Response) -> Optional[str]:
    try:
        return response.json().get("id")
    except (ValueError, AttributeError):
        return None


def build_transport(settings: Settings) -> EmailTransport:
    if settings.EMAIL_PROVIDER == "resend":
        return ResendTransport.from_settings(settings)
    return SmtpTransport.from_settings(settings)


def format_sender(name: str, address: Optional[str]) -> str:
    return formataddr((name, address or ""))
