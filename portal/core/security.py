"""
Credential Service Module

Hashes and verifies account secrets and issues/verifies signed session
credentials (HS256 JWTs) carrying identity, role and expiry.

Tokens are trusted for their whole lifetime: ``verify_token`` never re-reads the
user from storage and there is no revocation list, so the TTL
(``ACCESS_TOKEN_EXPIRE_MINUTES``) is the only way a credential stops working.
"""
import logging
from calendar import timegm
from datetime import datetime, timedelta
from typing import Optional, Tuple

from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import ValidationError

from portal.core.config import settings
from portal.core.ids import utcnow
from portal.models.user import User
from portal.schemas.auth import TokenPayload

logger = logging.getLogger(__name__)

# New digests use salted pbkdf2_sha256. Legacy unsalted hex SHA-256 digests still
# verify and are flagged for rehash on the next successful login.
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256", "hex_sha256"],
    deprecated=["hex_sha256"],
)


def hash_secret(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_secret(plain: str, digest: str) -> bool:
    """Recompute and compare; unknown or corrupt digests simply fail."""
    if not plain or not digest:
        return False
    try:
        return pwd_context.verify(plain, digest)
    except (ValueError, TypeError):
        return False


def verify_and_update(plain: str, digest: str) -> Tuple[bool, Optional[str]]:
    """
    Verify a secret and return a replacement digest when the stored one uses a
    deprecated scheme.

    Returns:
        (valid, new_digest) where new_digest is None unless a rehash is due
    """
    if not plain or not digest:
        return False, None
    try:
        return pwd_context.verify_and_update(plain, digest)
    except (ValueError, TypeError):
        return False, None


def _timestamp(moment: datetime) -> int:
    return timegm(moment.utctimetuple())


def create_access_token(
    user: User,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Issue a signed credential for a user.

    Args:
        user: The authenticated user
        expires_delta: Token lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        now: Issue time, defaults to the current UTC time

    Returns:
        str: Encoded JWT
    """
    issued_at = now or utcnow()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": user.id,
        "account_code": user.account_code,
        "display_name": user.display_name,
        "email": user.email,
        "role": str(getattr(user.role, "value", user.role)),
        "iat": _timestamp(issued_at),
        "exp": _timestamp(issued_at + expires_delta),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, now: Optional[datetime] = None) -> Optional[TokenPayload]:
    """
    Validate a credential.

    Returns None (never raises) when the token is malformed, its signature does
    not match, its claims are incomplete, or its expiry is not in the future.
    """
    if not token or not isinstance(token, str):
        return None
    try:
        claims = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": False},
        )
        payload = TokenPayload(**claims)
    except (JWTError, ValidationError, TypeError) as exc:
        logger.info("Rejected credential: %s", exc.__class__.__name__)
        return None

    current = _timestamp(now or utcnow())
    if payload.exp <= current:
        logger.info("Rejected expired credential for user %s", payload.sub)
        return None
    return payload
