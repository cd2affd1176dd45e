"""
JWT access token helpers.

Tokens carry the identity provider's claims: `sub` (user id), `email`,
`exp`, and optional `user_metadata`. The local provider signs them; with a
hosted provider they are signed by the provider with the same shared secret.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt


def create_access_token(
    data: dict[str, Any],
    secret_key: str,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(hours=24),
) -> str:
    """Sign `data` with an `exp` claim `expires_in` from now."""
    to_encode = dict(data)
    now = datetime.now(timezone.utc)
    to_encode.setdefault("iat", int(now.timestamp()))
    to_encode["exp"] = int((now + expires_in).timestamp())
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> Optional[dict[str, Any]]:
    """
    Decode and verify a token.

    Returns:
        The claims if the signature and expiry are valid, None otherwise
    """
    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            options={"verify_aud": False},
        )
    except jwt.PyJWTError:
        return None
