"""
JWT token utilities.

Tokens are issued by the console's identity service; this module verifies
them and can mint short-lived tokens for tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fincore.app.core.config import settings

REQUIRED_CLAIMS = ("sub", "user_id", "role")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Mint a signed access token.

    `data` must carry sub, user_id and role, e.g.
    {"sub": "jnakato", "user_id": 3, "role": "EMPLOYEE"}.
    """
    missing = [claim for claim in REQUIRED_CLAIMS if data.get(claim) in (None, "")]
    if missing:
        raise ValueError(f"Token payload is missing claims: {', '.join(missing)}")

    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate an access token.

    Returns:
        The payload when the signature, expiry and required claims check
        out, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if any(payload.get(claim) in (None, "") for claim in REQUIRED_CLAIMS):
        return None
    return payload
