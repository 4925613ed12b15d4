"""Signed access tokens carrying the caller's recruiter id and roles."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import jwt, JWTError

from api.config.settings import settings

# Claims copied from an expiring token into its replacement
CARRIED_CLAIMS = ("sub", "email", "name", "roles")


def create_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a token for the given claims.

    ``sub`` is the recruiter id matched against ``Application.recruiter_id``
    and ``roles`` feeds the role checks.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    claims = {key: data[key] for key in CARRIED_CLAIMS if key in data}
    claims.update({"exp": expire, "iat": now})
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_token(recruiter_id: str, roles: list[str], email: Optional[str] = None) -> str:
    data = {"sub": recruiter_id, "roles": roles}
    if email:
        data["email"] = email
    return create_token(data)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a token.

    Raises:
        JWTError: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise JWTError("Token has expired")
    except jwt.JWTClaimsError as e:
        raise JWTError(f"Invalid token claims: {e}")
    except JWTError as e:
        raise JWTError(f"Invalid token: {e}")

    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload


def should_refresh_token(payload: dict[str, Any]) -> bool:
    """True once less than half of the token's lifetime remains."""
    exp = payload.get("exp")
    iat = payload.get("iat")
    if not exp or not iat:
        return False

    now = datetime.now(timezone.utc).timestamp()
    return (exp - now) < (exp - iat) * 0.5
