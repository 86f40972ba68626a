"""Password hashing and JWT issuance/validation."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from guild.config.settings import Settings, get_settings
from guild.core.exceptions import AuthenticationError
from guild.core.roles import UserRole
from guild.utils.exceptions import ConfigurationError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_DEBUG_FALLBACK_SECRET = "guild-debug-only-secret"


def hash_password(password: str, settings: Settings | None = None) -> str:
    """Hash a password with bcrypt."""
    settings = settings or get_settings()
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _signing_key(settings: Settings) -> str:
    if settings.JWT_SECRET_KEY is not None:
        return settings.JWT_SECRET_KEY.get_secret_value()
    if settings.DEBUG:
        return _DEBUG_FALLBACK_SECRET
    raise ConfigurationError("JWT_SECRET_KEY must be set outside debug mode")


def _encode(
    claims: dict[str, Any],
    token_type: str,
    expires_delta: timedelta,
    settings: Settings,
) -> str:
    to_encode = claims.copy()
    to_encode.update({"exp": datetime.now(UTC) + expires_delta, "type": token_type})
    return jwt.encode(to_encode, _signing_key(settings), algorithm=settings.JWT_ALGORITHM)


def _subject_claims(user_id: UUID, tenant_id: UUID, role: UserRole | str) -> dict[str, Any]:
    return {
        "sub": str(user_id),
        "tenant": str(tenant_id),
        "role": role.value if isinstance(role, UserRole) else role,
    }


def create_access_token(
    user_id: UUID,
    tenant_id: UUID,
    role: UserRole | str,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a short-lived access token for a user of one organization."""
    settings = settings or get_settings()
    return _encode(
        _subject_claims(user_id, tenant_id, role),
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        settings,
    )


def create_refresh_token(
    user_id: UUID,
    tenant_id: UUID,
    role: UserRole | str,
    settings: Settings | None = None,
) -> str:
    """Create a long-lived refresh token."""
    settings = settings or get_settings()
    return _encode(
        _subject_claims(user_id, tenant_id, role),
        REFRESH_TOKEN_TYPE,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        settings,
    )


def decode_token(
    token: str,
    settings: Settings | None = None,
    expected_type: str = ACCESS_TOKEN_TYPE,
) -> dict[str, Any]:
    """Decode and validate a JWT.

    Args:
        token: Encoded JWT
        settings: Settings holding the signing key
        expected_type: Required value of the ``type`` claim

    Returns:
        The token claims

    Raises:
        AuthenticationError: If the token is malformed, expired, of the wrong
            type or missing its subject claims
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, _signing_key(settings), algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise AuthenticationError("Could not validate credentials") from e

    if payload.get("type") != expected_type:
        raise AuthenticationError("Invalid token type")

    try:
        payload["sub"] = UUID(payload["sub"])
        payload["tenant"] = UUID(payload["tenant"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuthenticationError("Token is missing subject claims") from e

    return payload
