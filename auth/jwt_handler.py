"""
JWT token creation and validation using python-jose.

Tokens are signed bearer credentials. Expiry is enforced against the
persisted session row, so decoding here checks the signature only.
"""

import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from dotenv import load_dotenv
from jose import jwt, JWTError

load_dotenv()

# Configuration
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"

# Security validation: Fail startup in production if using default secret key
_ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
if _ENVIRONMENT == "production" and SECRET_KEY == "dev-secret-key-change-in-production":
    raise RuntimeError(
        "SECURITY ERROR: JWT_SECRET_KEY environment variable must be set in production. "
        "Generate a secure key with: python -c \"import secrets; print(secrets.token_hex(32))\""
    )

SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "7"))


def session_ttl() -> timedelta:
    return timedelta(days=SESSION_TTL_DAYS)


def create_access_token(data: dict, expires_at: Optional[datetime] = None) -> str:
    """
    Create a signed JWT access token.

    A random nonce is always added, so two tokens issued for the same identity
    in the same instant still differ.

    Args:
        data: Dictionary containing token payload (sub, email, role, kind)
        expires_at: Expiry instant (UTC). Defaults to now + SESSION_TTL_DAYS.

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_at is None:
        expires_at = now + session_ttl()
    elif expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    to_encode = data.copy()
    to_encode.update({
        "exp": expires_at,
        "iat": now,
        "nonce": secrets.token_hex(16),
    })

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """
    Verify a token's signature and decode it.

    The exp claim is not checked here: an expired token must still reach the
    session lookup so the stale session row can be removed.

    Args:
        token: The JWT token string to verify

    Returns:
        Decoded payload dict if the signature is valid, None otherwise
    """
    try:
        return jwt.decode(
            token, SECRET_KEY, algorithms=[ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        return None
