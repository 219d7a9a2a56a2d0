"""
Bootstrap module for application initialization.
Handles startup checks and initial setup such as creating a default admin.
"""
import logging

from pydantic import ValidationError as SchemaError

from app.config import settings
from app.core.constants import ROLE_ADMIN
from app.core.errors import ConfigurationError
from app.core.security import hash_password, parse_duration, require_jwt_secret
from app.models.user import User
from app.schemas.auth import USERNAME_MAX_LENGTH, RegisterIn

logger = logging.getLogger("uvicorn.error")


def check_required_settings() -> None:
    """
    Fail fast on missing or malformed process configuration.

    Raises:
        ConfigurationError: If JWT_SECRET is absent or JWT_EXPIRES_IN is malformed
    """
    require_jwt_secret()
    parse_duration(settings.jwt_expires_in)


def _admin_credentials() -> RegisterIn:
    """
    Validate ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD with the same rules
    as self-registration.

    Raises:
        ConfigurationError: If any of them would be rejected at /auth/register
    """
    try:
        return RegisterIn(
            username=settings.admin_username,
            email=settings.admin_email,
            password=settings.admin_password,
        )
    except SchemaError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigurationError(f"Invalid default admin settings: {fields}")


async def _free_username(base: str) -> str:
    """``base`` if unused, else ``base2``, ``base3``... kept within the length limit."""
    candidate, n = base, 1
    while await User.filter(username=candidate).exists():
        n += 1
        suffix = str(n)
        candidate = base[: USERNAME_MAX_LENGTH - len(suffix)] + suffix
    return candidate


async def ensure_default_admin() -> User | None:
    """
    Create the first admin account from ADMIN_* settings.

    Admins are never self-registered, so this is the only way one comes
    into existence. Nothing happens when an admin already exists or
    ADMIN_PASSWORD is unset. The admin email must not belong to an
    existing account; a taken username gets a numeric suffix.

    Returns:
        The created admin, or None if nothing was created

    Raises:
        ConfigurationError: If the ADMIN_* values fail registration validation
    """
    if await User.filter(role=ROLE_ADMIN).exists():
        return None
    if not settings.admin_password:
        logger.warning("[bootstrap] No admin present and ADMIN_PASSWORD unset; no admin account exists yet.")
        return None

    creds = _admin_credentials()
    if await User.filter(email=creds.email).exists():
        logger.warning("[bootstrap] ADMIN_EMAIL %s already belongs to a non-admin user; skipped.", creds.email)
        return None

    admin = await User.create(
        username=await _free_username(creds.username),
        email=creds.email,
        password_hash=hash_password(creds.password),
        role=ROLE_ADMIN,
    )
    logger.warning("[bootstrap] Created default admin username=%s email=%s id=%s",
                   admin.username, admin.email, admin.id)
    return admin
