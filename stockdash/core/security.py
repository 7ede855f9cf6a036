"""
Bearer token verification.

Tokens are issued by the account service; this service only checks the
signature and reads the user identifier.
"""

from typing import Optional

from jose import JWTError, jwt

from stockdash.config import settings


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decodes and validates a JWT access token.

    Returns:
        The token's payload if valid, otherwise None.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        # Token is invalid (expired, wrong signature, etc.)
        return None


def user_id_from_payload(payload: dict) -> Optional[str]:
    user_id = payload.get("id") or payload.get("sub")
    return str(user_id) if user_id else None
