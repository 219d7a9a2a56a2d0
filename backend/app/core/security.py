"""
Security module for authentication.
Handles password hashing, JWT token creation/validation, and resolving the
acting user from a bearer token.
"""
import re
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext

from app.config import settings
from app.core.errors import ConfigurationError, Unauthenticated
from app.core.ids import parse_uuid
from app.models.user import User

# Password hashing context
# Argon2 is a modern, secure password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([dhms]?)\s*$")
_DURATION_UNITS = {"d": 86400, "h": 3600, "m": 60, "s": 1, "": 1}


def parse_duration(value: str) -> dt.timedelta:
    """
    Parse a token lifetime such as ``"7d"``, ``"12h"``, ``"30m"``, ``"45s"``
    or a bare number of seconds.

    Raises:
        ConfigurationError: If the value cannot be parsed
    """
    m = _DURATION_RE.match(str(value))
    if not m:
        raise ConfigurationError(f"Invalid JWT_EXPIRES_IN value: {value!r}")
    amount, unit = m.groups()
    return dt.timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def require_jwt_secret() -> str:
    """
    Return the configured signing secret.

    Raises:
        ConfigurationError: If JWT_SECRET is not configured. This is a
        startup failure, not a per-request authentication error.
    """
    if not settings.jwt_secret:
        raise ConfigurationError("JWT_SECRET environment variable is required")
    return settings.jwt_secret


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Note: Never store plain text passwords. Always use this function before saving.
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def issue_token(user_id: str) -> str:
    """
    Create a signed access token bound to a user identifier.

    Token payload includes:
        - sub: Subject (user ID)
        - iat: Issued at timestamp
        - exp: Expiration timestamp (JWT_EXPIRES_IN, default 7 days)
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + parse_duration(settings.jwt_expires_in),
    }
    return jwt.encode(payload, require_jwt_secret(), algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, require_jwt_secret(), algorithms=[JWT_ALG])


async def resolve_identity(token: str | None) -> User:
    """
    Resolve the user a token was issued to.

    Missing, malformed, expired and badly signed tokens, as well as tokens
    naming a user that no longer exists, all fail the same way.

    Raises:
        Unauthenticated: If no user can be resolved from the token
    """
    if not token:
        raise Unauthenticated("Access denied. No token provided.")
    secret = require_jwt_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALG])
    except jwt.InvalidTokenError:
        raise Unauthenticated("Token is not valid.")
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthenticated("Token is not valid.")
    uid = parse_uuid(user_id)
    user = await User.get_or_none(id=uid) if uid else None
    if not user:
        raise Unauthenticated("Token is not valid. User not found.")
    return user
