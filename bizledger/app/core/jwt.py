"""
JWT token utilities for authentication.

The identity provider issues the tokens; the ledger only decodes them and
reads the owner every record is scoped to. Minting is kept for test tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from bizledger.app.core.config import settings

# Claims that may carry the owner id, most specific first
OWNER_CLAIMS = ("user_id", "sub")


def create_owner_token(owner_id: str, username: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token for a ledger owner.

    Args:
        owner_id: Owner the token acts for (``user_id`` claim)
        username: Display name (``sub`` claim); defaults to the owner id
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {"sub": username or owner_id, "user_id": owner_id, "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token.

    Returns:
        Decoded token payload if valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def owner_id_from_claims(payload: Optional[Dict[str, Any]]) -> Optional[str]:
    """Owner id carried by a decoded token, or None when no claim names one."""
    if not payload:
        return None
    for claim in OWNER_CLAIMS:
        if payload.get(claim):
            return str(payload[claim])
    return None


def owner_id_from_authorization(header: Optional[str]) -> Optional[str]:
    """Owner id from an ``Authorization: Bearer`` header; None if absent or invalid."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return owner_id_from_claims(decode_access_token(token.strip()))
