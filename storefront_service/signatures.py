"""
signatures.py — Provider Checksum Scheme

The payment provider authenticates both directions with HMAC-SHA256 keyed by
the merchant's checksum key:
    • payment requests sign "amount=..&cancelUrl=..&description=..&orderCode=..&returnUrl=.."
    • webhook notifications sign every field of `data`, sorted by key
"""

import hashlib
import hmac
import json
from typing import Any, Mapping, Optional


def hmac_sha256_hex(key: str, message: str) -> str:
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_payment_request(amount: int, cancel_url: str, description: str,
                         order_code: int, return_url: str, checksum_key: str) -> str:
    message = (
        f"amount={amount}&cancelUrl={cancel_url}&description={description}"
        f"&orderCode={order_code}&returnUrl={return_url}"
    )
    return hmac_sha256_hex(checksum_key, message)


def _field_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def canonical_data_string(data: Mapping[str, Any]) -> str:
    return "&".join(f"{key}={_field_value(data[key])}" for key in sorted(data))


def sign_payload_data(data: Mapping[str, Any], checksum_key: str) -> str:
    return hmac_sha256_hex(checksum_key, canonical_data_string(data))


def verify_payload_data(data: Mapping[str, Any], signature: Optional[str],
                        checksum_key: Optional[str]) -> bool:
    """
    Checks a notification signature in constant time.

    Fails closed: without a checksum key or a signature nothing verifies,
    and a signature that is not plain hex never matches.
    """
    if not checksum_key or not signature or not isinstance(signature, str):
        return False
    expected = sign_payload_data(data, checksum_key)
    return hmac.compare_digest(expected.encode("ascii"), signature.lower().encode("utf-8", "replace"))
