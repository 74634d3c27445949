"""
mock_payment_service.py — Mock Implementation of the Payment Provider (REST API)

This module provides a simulated payment provider for local runs and tests.
It exposes a simple FastAPI application that mimics the provider's
payment-request endpoint, and a helper that builds signed webhook notifications.

Simulation Scenarios (selected by the x-api-key header):
    • "invalid_..."  → credentials rejected (HTTP 401)
    • "rejected_..." → HTTP 200 with a provider error code (order already exists)
    • anything else  → payment link created

Endpoints:
    POST /v2/payment-requests — Creates a payment link.

Port:
    Default: 8001 (HTTP)
"""

import hashlib
import hmac
import logging
from typing import List, Optional

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Mock Payment Provider")
log = logging.getLogger(__name__)

CHECKOUT_BASE_URL = "https://pay.mock-provider.local/web"


class PaymentItem(BaseModel):
    name: str
    quantity: int
    price: int


class PaymentRequest(BaseModel):
    """
    Represents a payment-request payload.

    Attributes:
        orderCode (int): Merchant order code.
        amount (int): Amount in whole currency units.
        description (str): Text shown on the payment page.
        items (List[PaymentItem]): Order lines.
        returnUrl (str): Redirect target after payment.
        cancelUrl (str): Redirect target after cancellation.
        signature (Optional[str]): Merchant signature of the request.
    """
    orderCode: int
    amount: int
    description: str
    items: List[PaymentItem] = []
    returnUrl: str
    cancelUrl: str
    signature: Optional[str] = None


@app.post("/v2/payment-requests")
def create_payment_request(
        request: PaymentRequest,
        client_id: str = Header(..., alias="x-client-id"),
        api_key: str = Header(..., alias="x-api-key"),
):
    """
    Processes a payment-request call.

    Args:
        request (PaymentRequest): The order body.
        client_id (str): Merchant client identifier.
        api_key (str): Merchant API key, also used to pick the simulated scenario.

    Returns:
        dict: Provider envelope {code, desc, data}; data carries checkoutUrl and qrCode on success.

    Raises:
        HTTPException(401): If the credentials are rejected.
    """
    log.info(f"[Provider] Payment request for order {request.orderCode} (client: {client_id})")

    # Scenario simulation
    if api_key.startswith("invalid_"):
        log.warning(f"[Provider] Credentials rejected for order {request.orderCode}.")
        raise HTTPException(
            status_code=401,
            detail={"code": "401", "desc": "Invalid client credentials"}
        )

    if api_key.startswith("rejected_"):
        log.warning(f"[Provider] Order {request.orderCode} already exists.")
        return {"code": "231", "desc": "Order already exists", "data": None}

    # Success case
    payment_link_id = hashlib.sha1(f"{client_id}:{request.orderCode}".encode()).hexdigest()[:32]
    log.info(f"[Provider] Payment link {payment_link_id} created for order {request.orderCode}.")
    return {
        "code": "00",
        "desc": "success",
        "data": {
            "orderCode": request.orderCode,
            "amount": request.amount,
            "description": request.description,
            "paymentLinkId": payment_link_id,
            "status": "PENDING",
            "checkoutUrl": f"{CHECKOUT_BASE_URL}/{payment_link_id}",
            "qrCode": f"00020101021238570010A000000727{request.orderCode:06d}{request.amount}",
        },
        "signature": None,
    }


def build_webhook_payload(order_code: int, amount: int, description: str = "",
                          code: str = "00", checksum_key: str = "") -> dict:
    """
    Builds a notification the way the provider posts it to the merchant webhook.

    Args:
        order_code (int): Merchant order code.
        amount (int): Paid amount.
        description (str): Transfer description.
        code (str): Status code, "00" for success.
        checksum_key (str): Merchant checksum key used for the signature.

    Returns:
        dict: {code, desc, success, data, signature}
    """
    data = {
        "orderCode": order_code,
        "amount": amount,
        "description": description,
        "accountNumber": "12345678",
        "reference": f"FT{order_code:08d}",
        "transactionDateTime": "2026-10-19 10:00:00",
        "currency": "VND",
        "paymentLinkId": f"link{order_code}",
        "code": code,
        "desc": "success" if code == "00" else "failed",
    }
    message = "&".join(f"{key}={'' if data[key] is None else data[key]}" for key in sorted(data))
    signature = hmac.new(checksum_key.encode(), message.encode(), hashlib.sha256).hexdigest()
    return {
        "code": code,
        "desc": data["desc"],
        "success": code == "00",
        "data": data,
        "signature": signature,
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8001)
