"""
Security Module

Admin console authentication: password check and JWT bearer tokens.
Uses passlib (bcrypt) and python-jose.

SCOPE: A single shared admin password from settings. This gates the admin
console and the in-process test runner; it is not a user system.
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from labcal.config import get_settings

settings = get_settings()

ADMIN_SUBJECT = "admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@lru_cache()
def _admin_password_hash(password: str) -> str:
    # Hashed once per configured password; bcrypt is slow on purpose
    return pwd_context.hash(password)


def verify_admin_password(plain_password: str) -> bool:
    """Check a password against the configured admin password."""
    if not plain_password:
        return False
    return pwd_context.verify(plain_password, _admin_password_hash(settings.ADMIN_PASSWORD))


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Token payload includes:
    - sub: "admin"
    - exp: expiration timestamp
    - iat: issued at timestamp
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": now
    })

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Returns the payload if valid, None if invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None
