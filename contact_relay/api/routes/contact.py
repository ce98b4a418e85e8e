"""
Contact form relay.

Public endpoint that validates a contact submission and relays it by email
to the operator inbox.
"""
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, status

from contact_relay.api.deps import get_contact_service
from contact_relay.schemas.contact import (
    ContactErrorResponse,
    ContactResponse,
    ContactSubmission,
)
from contact_relay.services.contact_service import ContactService

router = APIRouter()


@router.post(
    "/contact",
    response_model=ContactResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a contact message",
    description="Validates the submission and emails it to the configured inbox.",
    responses={
        400: {"model": ContactErrorResponse, "description": "Missing or invalid fields"},
        500: {"model": ContactErrorResponse, "description": "Delivery failed"},
    },
)
async def submit_contact(
    submission: ContactSubmission = Body(...),
    service: ContactService = Depends(get_contact_service),
) -> ContactResponse:
    """Relay a contact form submission; errors are rendered by the global handlers."""
    receipt = await service.handle(submission)
    return ContactResponse(success=True, message=receipt.message)
