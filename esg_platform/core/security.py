"""
Token service backed by the JWT section of the configuration.
Access and refresh tokens are signed with separate secrets and lifetimes.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt, JWTError
from esg_platform.core.config import JwtConfig

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class TokenError(Exception):
    """Raised when a token is malformed, expired, forged or of the wrong type."""


def _secret_for(jwt_config: JwtConfig, token_type: str) -> str:
    return jwt_config.refresh_secret if token_type == REFRESH_TOKEN else jwt_config.secret


def _encode(
    data: Dict[str, Any],
    jwt_config: JwtConfig,
    token_type: str,
    lifetime: timedelta,
    now: Optional[datetime] = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({"type": token_type, "iat": issued_at, "exp": issued_at + lifetime})
    return jwt.encode(to_encode, _secret_for(jwt_config, token_type), algorithm=jwt_config.algorithm)


def create_access_token(
    data: Dict[str, Any],
    jwt_config: JwtConfig,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Generates a signed access token. Lifetime defaults to JWT_EXPIRES_IN.
    """
    return _encode(data, jwt_config, ACCESS_TOKEN, expires_delta or jwt_config.expires_in, now)


def create_refresh_token(
    data: Dict[str, Any],
    jwt_config: JwtConfig,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Generates a signed refresh token. Lifetime defaults to JWT_REFRESH_EXPIRES_IN.
    """
    return _encode(data, jwt_config, REFRESH_TOKEN, expires_delta or jwt_config.refresh_expires_in, now)


def decode_token(token: str, jwt_config: JwtConfig, token_type: str = ACCESS_TOKEN) -> Dict[str, Any]:
    """
    Verifies signature and expiry, then checks the token is of the expected type.
    """
    try:
        payload = jwt.decode(token, _secret_for(jwt_config, token_type), algorithms=[jwt_config.algorithm])
    except JWTError as exc:
        raise TokenError(str(exc)) from exc

    if payload.get("type") != token_type:
        raise TokenError(f"expected a {token_type} token")

    return payload
