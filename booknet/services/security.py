"""
Member Credentials

Passwords are stored as bcrypt hashes (passlib). A member who logs in
gets a signed access token (python-jose, HS256) whose "sub" claim is
their member id. Everything past the identity layer works with that id
alone: the lending ledger never sees a token.

Usage:
    token = issue_access_token(member.id)
    member_id = read_member_id(token)  # None when forged, expired or malformed
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from booknet.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a login attempt against the stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def encode_token(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Sign a set of claims, adding "exp".

    Args:
        claims: Claims to sign; left untouched
        expires_delta: Lifetime, settings.access_token_expire_minutes by default
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {**claims, "exp": datetime.now(UTC) + lifetime}
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def issue_access_token(member_id: int, expires_delta: timedelta | None = None) -> str:
    """Access token identifying one member."""
    return encode_token({"sub": str(member_id), "type": ACCESS_TOKEN_TYPE}, expires_delta)


def decode_token(token: str) -> dict[str, Any] | None:
    """Verified claims of a token, or None if the signature or expiry is bad."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        return None


def read_member_id(token: str) -> int | None:
    """
    Member id carried by an access token.

    Returns:
        The id, or None for an invalid token, a token of another type,
        or a "sub" claim that is missing or not an integer
    """
    claims = decode_token(token)
    if claims is None:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        logger.warning("Rejected token: not an access token")
        return None

    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Rejected token: bad subject {claims.get('sub')!r}")
        return None
