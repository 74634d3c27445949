"""
errors.py — Error Taxonomy of the Checkout Flow

Every error carries the HTTP status it maps to and renders the JSON error body
used by the API: {"error": ..., "details": ..., "fallback": ...}.
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for all errors surfaced by the storefront service."""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthenticated(StorefrontError):
    """No identity cookie, or the credential could not be verified."""
    status_code = 401
    default_message = "Unauthorized"


class InvalidInput(StorefrontError):
    status_code = 400
    default_message = "Invalid request"


class EmptyCart(InvalidInput):
    default_message = "No items in cart"


class ProductNotFound(StorefrontError):
    status_code = 404
    default_message = "Product not found"


class ProviderFailure(StorefrontError):
    """Base class for payment-provider failures. Never retried."""
    default_message = "Failed to create payment order"


class ProviderError(ProviderFailure):
    """The provider answered, but not with a usable payment link."""


class ProviderUnavailable(ProviderFailure):
    """The provider could not be reached or returned something unreadable."""


class WebhookVerificationFailed(StorefrontError):
    """A notification whose signature does not match its payload."""
    status_code = 400
    default_message = "Invalid webhook signature"
