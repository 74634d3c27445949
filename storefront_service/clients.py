"""
This module provides the communication client for the external payment provider:
- Payment-request creation (REST API)
The client encapsulates the protocol, error mapping and connection management.
Provider failures are translated into ProviderError / ProviderUnavailable; nothing is retried.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .config import Settings
from .errors import ProviderError, ProviderUnavailable
from .models import SUCCESS_CODE, OrderRequest, PaymentLink

PAYMENT_REQUESTS_PATH = "/v2/payment-requests"

log = logging.getLogger(__name__)


def _response_details(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text


# --- Payment Client (REST) ---
class PaymentClient:
    """
    Client for the payment provider's merchant API.
    Handles the creation of payment links and error responses.
    """
    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        """
        Initializes the HTTP client with the provider base URL and timeout configuration.

        Args:
            settings (Settings): Provider credentials, URL and timeouts.
            client (Optional[httpx.Client]): Preconfigured client, e.g. for tests.
        """
        self.settings = settings
        if client is None:
            timeout_config = httpx.Timeout(settings.provider_connect_timeout,
                                           read=settings.provider_read_timeout)
            client = httpx.Client(base_url=settings.payos_api_url, timeout=timeout_config)
        self.client = client

    def close(self):
        """Closes the HTTP client session."""
        self.client.close()

    def create_payment_request(self, order: OrderRequest) -> PaymentLink:
        """
        Creates a payment link via the provider REST API.

        Args:
            order (OrderRequest): The signed order body.

        Returns:
            PaymentLink: Checkout URL and optional QR payload.

        Raises:
            ProviderError: If the provider answers with an error status or error code.
            ProviderUnavailable: If the provider cannot be reached, times out,
                or returns a body without a checkout URL.
        """
        log_prefix = f"[Order: {order.orderCode}]"
        headers = {
            "x-client-id": self.settings.payos_client_id or "",
            "x-api-key": self.settings.payos_api_key or "",
        }
        payload = order.model_dump(exclude_none=True)

        log.info(f"{log_prefix} Creating payment request (amount: {order.amount}, items: {len(order.items)}).")
        try:
            response = self.client.post(PAYMENT_REQUESTS_PATH, json=payload, headers=headers)
            response.raise_for_status()  # Raises HTTPStatusError on 4xx/5xx
            body = response.json()
        except httpx.TimeoutException as e:
            log.error(f"{log_prefix} Payment provider timeout ({type(e).__name__}). Status unknown.")
            raise ProviderUnavailable(details="Payment provider timed out") from e
        except httpx.HTTPStatusError as e:
            details = _response_details(e.response)
            log.error(f"{log_prefix} Payment provider rejected the request (HTTP {e.response.status_code}): {details}")
            raise ProviderError(details=details) from e
        except httpx.HTTPError as e:
            log.error(f"{log_prefix} Payment provider unreachable: {e}")
            raise ProviderUnavailable(details=str(e) or type(e).__name__) from e
        except ValueError as e:
            log.error(f"{log_prefix} Payment provider returned a non-JSON body.")
            raise ProviderUnavailable(details="Malformed payment provider response") from e

        if not isinstance(body, dict):
            log.error(f"{log_prefix} Unexpected payment provider response: {body!r}")
            raise ProviderUnavailable(details="Malformed payment provider response")

        code = body.get("code")
        if code is not None and str(code) != SUCCESS_CODE:
            log.warning(f"{log_prefix} Payment provider returned error code {code}: {body.get('desc')}")
            raise ProviderError(details=body)

        data = body.get("data") if isinstance(body.get("data"), dict) else body
        checkout_url = data.get("checkoutUrl")
        if not checkout_url:
            log.error(f"{log_prefix} Payment provider response has no checkout URL: {body}")
            raise ProviderUnavailable(details="Malformed payment provider response")

        try:
            link = PaymentLink(checkoutUrl=checkout_url, qrCode=data.get("qrCode"))
        except ValidationError as e:
            log.error(f"{log_prefix} Payment provider response has unusable link fields: {body}")
            raise ProviderUnavailable(details="Malformed payment provider response") from e

        log.info(f"{log_prefix} Payment link created.")
        return link
