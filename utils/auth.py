"""
Authentication utilities for the admin console

There is a single shared admin password. A successful login returns a JWT
that the console sends back as a Bearer token.
"""
import logging
from datetime import datetime, timedelta
from functools import lru_cache

import bcrypt
import jwt

import config

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


def create_admin_token() -> str:
    """
    Create a JWT token for an authenticated admin session

    Token includes:
        - exp: Expiration timestamp (JWT_EXPIRATION_HOURS from now)
        - iat: Issued at timestamp
        - type: Token type identifier
    """
    now = datetime.utcnow()
    payload = {
        "exp": now + timedelta(hours=config.JWT_EXPIRATION_HOURS),
        "iat": now,
        "type": "admin",
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_admin_token(token: str) -> bool:
    """
    Verify an admin JWT token

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid
    """
    payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    return payload.get("type") == "admin"


@lru_cache(maxsize=1)
def _plain_password_hash(password: str) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


def admin_password_hash() -> bytes:
    """ADMIN_PASS_HASH when configured, else a bcrypt hash of ADMIN_PASS"""
    if config.ADMIN_PASS_HASH:
        return config.ADMIN_PASS_HASH.encode("utf-8")
    return _plain_password_hash(config.ADMIN_PASS)


def verify_admin_password(password: str) -> bool:
    if not password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), admin_password_hash())
    except ValueError:
        logger.error("ADMIN_PASS_HASH is not a valid bcrypt hash")
        return False
