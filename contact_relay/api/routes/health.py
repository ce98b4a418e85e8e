"""
Health check endpoints for the contact relay.

Provides:
- /health - Liveness probe plus credential presence
- /test-email - One-shot delivery configuration probe
"""
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from contact_relay.api.deps import get_email_transport, get_settings
from contact_relay.core.config import Settings
from contact_relay.core.email import EmailTransport
from contact_relay.core.sanitizer import redact_pii, redact_secrets
from contact_relay.schemas.health import EmailCheckResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

PROCESS_STARTED_AT = time.monotonic()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Reports process up-state and whether delivery credentials are set.",
)
async def health(app_settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        message="Server is running smoothly",
        emailConfigured=app_settings.email_configured,
        emailProvider=app_settings.EMAIL_PROVIDER,
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - PROCESS_STARTED_AT, 3),
        environment=app_settings.ENVIRONMENT,
    )


@router.get(
    "/test-email",
    response_model=EmailCheckResponse,
    summary="Delivery configuration check",
    description="Asks the delivery provider to verify the configured credentials.",
    response_model_exclude_none=True,
    responses={500: {"model": EmailCheckResponse}},
)
async def test_email(
    app_settings: Settings = Depends(get_settings),
    transport: EmailTransport = Depends(get_email_transport),
):
    try:
        await transport.verify()
    except Exception as exc:
        detail = getattr(exc, "detail", None) or str(exc) or type(exc).__name__
        detail = redact_pii(redact_secrets(detail, app_settings.secret_values()))
        logger.warning(
            "Email configuration check failed provider=%s error=%s",
            transport.name,
            detail,
        )
        return JSONResponse(
            status_code=500,
            content=EmailCheckResponse(
                success=False, error=f"Email configuration error: {detail}"
            ).model_dump(exclude_none=True),
        )

    return EmailCheckResponse(
        success=True, message="Email transporter is configured correctly"
    )
