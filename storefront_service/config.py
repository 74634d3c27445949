"""
config.py — Deployment Configuration

Settings are read once from the environment and then passed explicitly to the
components that need them (payment gateway, webhook receiver, identity checks).
Nothing below reads os.environ after start-up.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel

DEFAULT_PAYOS_API_URL = "https://api-merchant.payos.vn"
DEFAULT_BASE_URL = "http://localhost:3002"


class Settings(BaseModel):
    """
    Runtime configuration of the storefront service.

    Attributes:
        payos_client_id (Optional[str]): Client identifier issued by the payment provider.
        payos_api_key (Optional[str]): API key sent with every payment-request call.
        payos_checksum_key (Optional[str]): Shared secret for request and webhook signatures.
        payos_api_url (str): Base URL of the provider's merchant API.
        base_url (str): Public URL of the storefront, used for return/cancel redirects.
        jwt_secret (str): Secret used to sign and verify the identity cookie.
        provider_connect_timeout (float): Connect timeout for provider calls, in seconds.
        provider_read_timeout (float): Read timeout for provider calls, in seconds.
        log_file (Optional[str]): Optional log file path.
    """
    payos_client_id: Optional[str] = None
    payos_api_key: Optional[str] = None
    payos_checksum_key: Optional[str] = None
    payos_api_url: str = DEFAULT_PAYOS_API_URL
    base_url: str = DEFAULT_BASE_URL
    jwt_secret: str = "dev-secret"
    provider_connect_timeout: float = 5.0
    provider_read_timeout: float = 8.0
    log_file: Optional[str] = None

    @property
    def payos_configured(self) -> bool:
        """True when all three provider credentials are present."""
        return bool(self.payos_client_id and self.payos_api_key and self.payos_checksum_key)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Builds Settings from environment variables.

    Args:
        environ (Optional[Mapping[str, str]]): Source mapping, defaults to os.environ.

    Returns:
        Settings: The populated configuration.
    """
    env = os.environ if environ is None else environ
    return Settings(
        payos_client_id=env.get("PAYOS_CLIENT_ID") or None,
        payos_api_key=env.get("PAYOS_API_KEY") or None,
        payos_checksum_key=env.get("PAYOS_CHECKSUM_KEY") or None,
        payos_api_url=env.get("PAYOS_API_URL", DEFAULT_PAYOS_API_URL),
        base_url=env.get("BASE_URL") or env.get("NEXT_PUBLIC_BASE_URL") or DEFAULT_BASE_URL,
        jwt_secret=env.get("JWT_SECRET", "dev-secret"),
        log_file=env.get("LOG_FILE") or None,
    )
