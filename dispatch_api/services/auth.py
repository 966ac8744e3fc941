"""
Authentication Service

JWT session tokens and password hashing.

Session tokens are signed with HMAC-SHA256 using SECRET_KEY and carry the
user id in the "sub" claim. Passwords are hashed with bcrypt; the hash
embeds its own salt, so only the hash string is stored.
"""

from datetime import datetime, timedelta

import bcrypt
from jose import JWTError, jwt

from dispatch_api.config import settings


ALGORITHM = "HS256"

# bcrypt work factor
BCRYPT_ROUNDS = 12


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT for the given payload.

    Args:
        data: Payload to encode, typically {"sub": user_id}
        expires_delta: Token lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict | None:
    """
    Verify and decode a JWT.

    Returns:
        Decoded payload if the signature and expiry check out, None otherwise
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored bcrypt hash. Blank or malformed hashes never match."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
