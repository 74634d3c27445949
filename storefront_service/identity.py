"""
identity.py — Identity Cookie Handling

The storefront authenticates requests with a signed HS256 token held in an
HTTP-only cookie. Issuing the token at login belongs to the account system;
this module signs, verifies and clears it. The signing secret is always passed
in by the caller.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, Response
from jose import JWTError, jwt

from .models import Identity

COOKIE_NAME = "token"
ALGORITHM = "HS256"
SESSION_TTL = timedelta(days=7)

log = logging.getLogger(__name__)


def issue_session_token(user_id, email: Optional[str], secret: str,
                        expires_in: timedelta = SESSION_TTL) -> str:
    """
    Signs a session credential for a user.

    Args:
        user_id: The user's identifier, stored as the `sub` claim.
        email (Optional[str]): The user's e-mail address.
        secret (str): Signing secret.
        expires_in (timedelta): Lifetime of the credential, 7 days by default.

    Returns:
        str: The encoded token.
    """
    claims = {
        "sub": str(user_id),
        "email": email,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_session_token(token: Optional[str], secret: str) -> Optional[Identity]:
    """Returns the identity carried by a token, or None if it is missing, forged or expired."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as e:
        log.info(f"Rejected identity cookie: {e}")
        return None

    user_id = claims.get("sub")
    if not user_id:
        return None
    return Identity(userId=str(user_id), email=claims.get("email"))


def identity_from_request(request: Request, secret: str) -> Optional[Identity]:
    return decode_session_token(request.cookies.get(COOKIE_NAME), secret)


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(SESSION_TTL.total_seconds()),
        path="/",
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response):
    response.set_cookie(COOKIE_NAME, "", max_age=0, path="/", httponly=True)
