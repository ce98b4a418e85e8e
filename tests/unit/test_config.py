"""Tests for environment-driven settings."""
from pydantic import SecretStr

from contact_relay.core.config import DEFAULT_ORIGINS, Settings


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


def test_defaults_match_gmail_smtp():
    config = make_settings()

    assert config.EMAIL_PROVIDER == "smtp"
    assert (config.SMTP_HOST, config.SMTP_PORT, config.SMTP_SECURE) == ("smtp.gmail.com", 465, True)
    assert config.CONTACT_EMAIL == "admin@starkville.tech"
    assert config.PORT == 5000


def test_allowed_origins_default_outside_production():
    config = make_settings(ENVIRONMENT="development", ALLOWED_ORIGINS=[])

    assert config.ALLOWED_ORIGINS == DEFAULT_ORIGINS


def test_allowed_origins_not_defaulted_in_production():
    config = make_settings(ENVIRONMENT="production", ALLOWED_ORIGINS=[])

    assert config.ALLOWED_ORIGINS == []


def test_email_configured_requires_user_and_pass():
    assert make_settings(EMAIL_USER="relay@starkville.tech").email_configured is False
    assert (
        make_settings(EMAIL_USER="relay@starkville.tech", EMAIL_PASS=SecretStr("pw")).email_configured
        is True
    )


def test_sender_address_prefers_email_from():
    config = make_settings(EMAIL_USER="relay@starkville.tech", EMAIL_FROM="hello@starkville.tech")

    assert config.sender_address == "hello@starkville.tech"


def test_secret_values_lists_configured_secrets():
    config = make_settings(EMAIL_PASS=SecretStr("pw"), RESEND_API_KEY=SecretStr("re_key"))

    assert config.secret_values() == ["pw", "re_key"]
