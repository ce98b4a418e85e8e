"""
Contact Relay Services Module.

Services:
    - ContactService: validates contact submissions and relays them by email
"""

from .contact_service import ContactConfig, ContactReceipt, ContactService

__all__ = ["ContactConfig", "ContactReceipt", "ContactService"]
