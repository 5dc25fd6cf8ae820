import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from taskflow.core.clock import utcnow
from taskflow.core.config import settings

logger = logging.getLogger(__name__)

# Argon2 for password hashing; refresh tokens only need a fast one-way digest
ph = PasswordHasher(
    time_cost=2,        # Number of iterations
    memory_cost=65536,  # Memory usage in KiB (64 MB)
    parallelism=4,      # Number of parallel threads
    hash_len=32,        # Length of hash in bytes
    salt_len=16         # Length of salt in bytes
)

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class RefreshTokenPair:
    """A freshly generated refresh token. Only ``hashed`` is ever persisted."""

    raw: str
    hashed: str
    expires_at: datetime


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password"""
    try:
        return ph.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False

def get_password_hash(password: str) -> str:
    """Hash a password for storing"""
    return ph.hash(password)

def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed, short-lived JWT access token for ``user_id``"""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "exp": utcnow() + expires_delta,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Optional[dict]:
    """Decode a JWT access token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        logger.debug("Access token rejected: %s", exc)
        return None

def verify_access_token(token: str) -> Optional[int]:
    """
    Resolve an access token to a user id.

    Fails closed: a bad signature, an expired token, a token of another type
    or a malformed subject all yield ``None``.
    """
    try:
        payload = decode_access_token(token)
        if not payload or payload.get("type") != ACCESS_TOKEN_TYPE:
            return None
        return int(payload["sub"])
    except Exception:
        return None

def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def generate_refresh_token(now: Optional[datetime] = None) -> RefreshTokenPair:
    """Generate a 256-bit random refresh token together with its digest and expiry"""
    now = now or utcnow()
    raw = secrets.token_hex(32)
    return RefreshTokenPair(
        raw=raw,
        hashed=hash_refresh_token(raw),
        expires_at=now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
