"""Contact Relay: contact form to email relay service."""
