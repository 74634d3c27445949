"""
webhooks.py — Payment Notification Receiver

The provider reports the final outcome of each payment asynchronously and may
deliver the same notification more than once. This module verifies the
notification signature and records successful payments exactly once per order.

The receiver never fails towards the provider: every notification is
acknowledged, and the acknowledgment says whether it was accepted.
"""

import json
import logging
import threading
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from .errors import WebhookVerificationFailed
from .models import PaymentRecord, WebhookAck, WebhookPayload
from .signatures import verify_payload_data

log = logging.getLogger(__name__)


class PaymentLedger:
    """
    Thread-safe record of payment outcomes, keyed by order code.

    Successful payments are upserted; rejections are remembered per
    (orderCode, status code) so a redelivered rejection is only logged once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._payments: Dict[int, PaymentRecord] = {}
        self._rejections: Set[Tuple[int, str]] = set()

    def record_success(self, order_code: int, amount: int, description: str = "") -> bool:
        """Returns True when the payment was not recorded before."""
        with self._lock:
            existing = self._payments.get(order_code)
            if existing is not None:
                self._payments[order_code] = existing.model_copy(
                    update={"amount": amount, "description": description}
                )
                return False
            self._payments[order_code] = PaymentRecord(
                orderCode=order_code, amount=amount, description=description
            )
            return True

    def record_rejection(self, order_code: int, code: str) -> bool:
        """Returns True for the first rejection seen with this order code and status code."""
        with self._lock:
            key = (order_code, code)
            if key in self._rejections:
                return False
            self._rejections.add(key)
            return True

    def get(self, order_code: int) -> Optional[PaymentRecord]:
        with self._lock:
            return self._payments.get(order_code)

    def payments(self) -> List[PaymentRecord]:
        with self._lock:
            return list(self._payments.values())


class WebhookReceiver:
    """
    Verifies and records payment notifications.

    Args:
        ledger (PaymentLedger): Where outcomes are recorded.
        checksum_key (Optional[str]): Provider checksum key. Without it no notification verifies.
    """

    def __init__(self, ledger: PaymentLedger, checksum_key: Optional[str]):
        self.ledger = ledger
        self.checksum_key = checksum_key

    def verify(self, raw: Dict[str, Any]) -> WebhookPayload:
        """
        Parses and authenticates a notification.

        Raises:
            WebhookVerificationFailed: If the payload is malformed or its signature does not match.
        """
        data = raw.get("data")
        if not isinstance(data, dict):
            raise WebhookVerificationFailed("Notification has no data section")
        if not verify_payload_data(data, raw.get("signature"), self.checksum_key):
            raise WebhookVerificationFailed()
        try:
            return WebhookPayload.model_validate(raw)
        except ValidationError as e:
            raise WebhookVerificationFailed("Malformed notification") from e

    def handle_notification(self, raw: Any) -> WebhookAck:
        """
        Processes one notification delivery.

        Args:
            raw: The notification as bytes, str or an already decoded dict.

        Returns:
            WebhookAck: success=True only for a verified, successful payment.
        """
        if isinstance(raw, (bytes, str)):
            try:
                raw = json.loads(raw)
            except ValueError:
                log.warning("[Webhook] Received a non-JSON notification.")
                return WebhookAck(success=False, message="Invalid webhook payload")
        if not isinstance(raw, dict):
            log.warning("[Webhook] Received a notification that is not a JSON object.")
            return WebhookAck(success=False, message="Invalid webhook payload")

        try:
            payload = self.verify(raw)
        except WebhookVerificationFailed as e:
            log.warning(f"[Webhook] Notification rejected: {e.message}. Payload: {raw}")
            return WebhookAck(success=False, message="Payment failed or invalid webhook")

        data = payload.data
        log_prefix = f"[Order: {data.orderCode}]"

        if not payload.succeeded:
            status = data.code if payload.code == "00" and data.code else payload.code
            if self.ledger.record_rejection(data.orderCode, status):
                log.info(f"{log_prefix} Payment failed with status {status}: {payload.desc}")
            else:
                log.info(f"{log_prefix} Duplicate failure notification (status {status}) ignored.")
            return WebhookAck(success=False, message="Payment failed or invalid webhook")

        if self.ledger.record_success(data.orderCode, data.amount, data.description):
            log.info(f"{log_prefix} Payment successful (amount: {data.amount}, description: {data.description}).")
        else:
            log.info(f"{log_prefix} Duplicate success notification, payment already recorded.")
        return WebhookAck(success=True, message="Payment processed successfully")
