from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from contact_relay.core.config import Settings
from contact_relay.core.email import (
    DeliveryFailure,
    EmailDeliveryError,
    EmailTransport,
    OutboundMessage,
    format_sender,
)
from contact_relay.core.errors import (
    DeliveryAuthError,
    DeliveryEnvelopeError,
    DeliveryError,
    DeliveryUnknownError,
    InvalidEmailError,
    MissingFieldsError,
)
from contact_relay.core.sanitizer import redact_secrets
from contact_relay.schemas.contact import SCHEMAS, ContactSubmission, SubmissionSchema

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CONFIRMATION_MESSAGE = "Thank you! Your message has been sent successfully."

FIELD_LABELS = {
    "name": "Name",
    "email": "Email",
    "phone": "Phone",
    "location": "Location",
    "service": "Service",
    "message": "Message",
}
# Rendered on their own block below the label, line for line.
FREE_TEXT_FIELDS = {"message"}


@dataclass(frozen=True)
class ContactConfig:
    """Everything the contact handler needs, resolved once from settings."""

    sender: str
    recipient: str
    schema: SubmissionSchema
    site_name: str
    include_html: bool = True
    secrets: Tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContactConfig":
        return cls(
            sender=format_sender(settings.SENDER_NAME, settings.sender_address),
            recipient=settings.CONTACT_EMAIL,
            schema=SCHEMAS[settings.CONTACT_FORM],
            site_name=settings.SENDER_NAME,
            include_html=settings.EMAIL_HTML,
            secrets=tuple(settings.secret_values()),
        )


@dataclass(frozen=True)
class ContactReceipt:
    message: str = CONFIRMATION_MESSAGE


def _single_line(value: str) -> str:
    return " ".join(value.split())


def _email_domain(email: Optional[str]) -> Optional[str]:
    if email and "@" in email:
        return email.rsplit("@", 1)[-1]
    return None


class ContactService:
    """Validates contact submissions and relays them to the operator inbox."""

    def __init__(self, config: ContactConfig, transport: EmailTransport):
        self.config = config
        self.transport = transport

    @property
    def schema(self) -> SubmissionSchema:
        return self.config.schema

    def validate(self, submission: ContactSubmission) -> None:
        missing = self.schema.missing(submission)
        if any(missing.values()):
            raise MissingFieldsError(missing)
        if not EMAIL_PATTERN.match(submission.email):
            raise InvalidEmailError()

    def _fields(self, submission: ContactSubmission) -> List[Tuple[str, str]]:
        names: Sequence[str] = self.schema.required + self.schema.optional
        ordered = [f for f in FIELD_LABELS if f in names]
        return [
            (name, getattr(submission, name))
            for name in ordered
            if submission.present(name)
        ]

    def build_subject(self, submission: ContactSubmission) -> str:
        name = _single_line(submission.name)
        if self.schema.kind == "extended" and submission.service:
            return f"New {_single_line(submission.service)} Request from {name}"
        return f"New Contact Form Message from {name}"

    def render_text(self, submission: ContactSubmission) -> str:
        lines = ["New Contact Form Submission", ""]
        for name, value in self._fields(submission):
            label = FIELD_LABELS[name]
            if name in FREE_TEXT_FIELDS:
                lines.append(f"{label}:")
                lines.extend(value.splitlines())
            else:
                lines.append(f"{label}: {value}")
        lines.extend(
            [
                "",
                f"This message was sent from the {self.config.site_name} website contact form.",
            ]
        )
        return "\n".join(lines)

    def render_html(self, submission: ContactSubmission) -> str:
        parts = ["<h2>New Contact Form Submission</h2>"]
        for name, value in self._fields(submission):
            label = FIELD_LABELS[name]
            escaped = html.escape(value)
            if name in FREE_TEXT_FIELDS:
                escaped = escaped.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "<br>")
                parts.append(f"<p><strong>{label}:</strong></p>")
                parts.append(f"<p>{escaped}</p>")
            else:
                parts.append(f"<p><strong>{label}:</strong> {escaped}</p>")
        parts.append("<hr>")
        parts.append(
            f"<p>This message was sent from the {html.escape(self.config.site_name)} "
            "website contact form.</p>"
        )
        return "\n".join(parts)

    def build_message(self, submission: ContactSubmission) -> OutboundMessage:
        return OutboundMessage(
            sender=self.config.sender,
            to=self.config.recipient,
            reply_to=submission.email,
            subject=self.build_subject(submission),
            text=self.render_text(submission),
            html=self.render_html(submission) if self.config.include_html else None,
        )

    def classify(self, exc: Exception) -> DeliveryError:
        if isinstance(exc, EmailDeliveryError):
            if exc.kind == DeliveryFailure.AUTH:
                return DeliveryAuthError()
            if exc.kind == DeliveryFailure.ENVELOPE:
                return DeliveryEnvelopeError()
            detail = exc.detail
        else:
            detail = str(exc) or type(exc).__name__
        return DeliveryUnknownError(redact_secrets(detail, self.config.secrets))

    async def handle(self, submission: ContactSubmission) -> ContactReceipt:
        try:
            self.validate(submission)
        except (MissingFieldsError, InvalidEmailError) as exc:
            logger.warning(
                "Contact submission rejected error=%s",
                type(exc).__name__,
                extra={
                    "action": "contact_rejected",
                    "schema": self.schema.kind,
                    "error_class": type(exc).__name__,
                },
            )
            raise

        message = self.build_message(submission)

        try:
            await self.transport.send(message)
        except Exception as exc:
            error = self.classify(exc)
            logger.error(
                "Contact delivery failed name=%s error=%s detail=%s",
                submission.name,
                type(error).__name__,
                redact_secrets(str(exc), self.config.secrets),
                extra={
                    "action": "contact_delivery_failed",
                    "provider": self.transport.name,
                    "email_domain": _email_domain(submission.email),
                    "error_class": type(error).__name__,
                },
            )
            raise error from exc

        logger.info(
            "Contact form submitted by name=%s",
            submission.name,
            extra={
                "action": "contact_delivered",
                "provider": self.transport.name,
                "email_domain": _email_domain(submission.email),
                "schema": self.schema.kind,
            },
        )
        return ContactReceipt()

    async def verify_delivery(self) -> None:
        await self.transport.verify()
