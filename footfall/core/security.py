"""
Security utilities: identity anonymization and admin JWT verification.
"""
import hashlib
import ipaddress
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

from footfall.core.config import settings
from footfall.core.logging import get_logger

logger = get_logger(__name__)

# Substituted for empty or unparseable client addresses
FALLBACK_ADDRESS = "0.0.0.0"


def normalize_address(raw_address: Optional[str], fallback: str = FALLBACK_ADDRESS) -> str:
    """Return a canonical IP literal, or the fallback sentinel if it does not parse."""
    candidate = (raw_address or "").strip()
    if not candidate:
        return fallback
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return fallback


def hash_identity(
    raw_address: Optional[str],
    salt: str,
    fallback: str = FALLBACK_ADDRESS,
) -> str:
    """
    Derive the anonymized visitor identity from a network address.

    SHA-256 over the server-side salt followed by the address, hex encoded.
    The raw address is never persisted.
    """
    address = normalize_address(raw_address, fallback)
    return hashlib.sha256(f"{salt}{address}".encode()).hexdigest()


def resolve_client_address(
    forwarded_for: Optional[str],
    peer_address: Optional[str],
) -> Optional[str]:
    """Pick the client address: first X-Forwarded-For entry, else the socket peer."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return peer_address


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=12))
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT access token."""
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.warning("Invalid JWT token", error=str(e))
        return None
