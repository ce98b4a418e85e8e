from fastapi import Depends

from contact_relay.core.config import Settings, settings
from contact_relay.core.email import EmailTransport, build_transport
from contact_relay.services.contact_service import ContactConfig, ContactService


def get_settings() -> Settings:
    return settings


def get_email_transport(
    app_settings: Settings = Depends(get_settings),
) -> EmailTransport:
    """
    Delivery transport dependency.

    Usage:
        @router.get("/check")
        async def check(transport: EmailTransport = Depends(get_email_transport)):
            await transport.verify()
    """
    return build_transport(app_settings)


def get_contact_config(app_settings: Settings = Depends(get_settings)) -> ContactConfig:
    return ContactConfig.from_settings(app_settings)


def get_contact_service(
    config: ContactConfig = Depends(get_contact_config),
    transport: EmailTransport = Depends(get_email_transport),
) -> ContactService:
    return ContactService(config=config, transport=transport)
