"""
=============================================================================
CONTACT RELAY - ERROR HANDLING MODULE
=============================================================================
Contact error taxonomy and global exception handlers for secure,
user-friendly error responses.

Features:
- Typed contact errors carrying their HTTP status and public message
- Catches unhandled exceptions
- Logs full stack trace server-side
- Returns sanitized error message to client

Usage:
    # In main.py
    from contact_relay.core.errors import register_exception_handlers
    register_exception_handlers(app)
=============================================================================
"""

import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from contact_relay.core.config import settings

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS: List[str] = [
    "GET /",
    "GET /api/health",
    "POST /api/contact",
    "GET /api/test-email",
]


# =============================================================================
# CONTACT ERRORS
# =============================================================================


class ContactError(Exception):
    """Base error for a contact submission that could not be relayed."""

    status_code: int = 500
    public_message: str = "Failed to send message. Please try again later."

    def __init__(self, public_message: Optional[str] = None):
        if public_message is not None:
            self.public_message = public_message
        super().__init__(self.public_message)

    def to_payload(self) -> Dict[str, Any]:
        return {"success": False, "error": self.public_message}


class MissingFieldsError(ContactError):
    """One or more required fields are absent."""

    status_code = 400
    public_message = "All required fields must be provided"

    def __init__(self, missing: Dict[str, bool]):
        self.missing = missing
        super().__init__()

    @property
    def missing_fields(self) -> List[str]:
        return [name for name, absent in self.missing.items() if absent]

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["missing"] = self.missing
        return payload


class InvalidEmailError(ContactError):
    """The submitter's address is not a plausible email."""

    status_code = 400
    public_message = "Please provide a valid email address"


class DeliveryError(ContactError):
    """The delivery provider did not accept the message."""

    status_code = 500


class DeliveryAuthError(DeliveryError):
    public_message = "Email authentication failed. Please check server configuration."


class DeliveryEnvelopeError(DeliveryError):
    public_message = "Invalid email address. Please check your email and try again."


class DeliveryUnknownError(DeliveryError):
    """Any other provider failure. ``detail`` is for server logs only."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__()


# =============================================================================
# HANDLERS
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(ContactError)
    async def contact_error_handler(request: Request, exc: ContactError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Invalid request body",
                "details": errors,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": "Route not found",
                    "message": f"Cannot {request.method} {request.url.path}",
                    "availableEndpoints": AVAILABLE_ENDPOINTS,
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unhandled exceptions.

        - Logs the full traceback for debugging
        - Returns a generic error message to prevent info leakage
        - In debug mode, includes the exception type
        """
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}:\n"
            f"{traceback.format_exc()}"
        )

        content = {
            "success": False,
            "error": "Internal server error",
            "message": "Something went wrong on our end. Please try again later.",
        }
        if settings.DEBUG:
            content["error_type"] = type(exc).__name__
            content["path"] = request.url.path
        return JSONResponse(status_code=500, content=content)
