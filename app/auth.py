"""Bearer token verification.

Tokens are issued elsewhere; this service only verifies them. The ``sub``
claim (or ``user_id``) identifies the caller and the optional ``org_id``
claim scopes shared analysis history.
"""

import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings

logger = logging.getLogger("pactwise.auth")

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    org_id: str | None = None


def decode_token(token: str, settings: Settings) -> CurrentUser | None:
    """Validate a JWT and return the caller, or None if it is unusable."""
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret_key,
            algorithms=[settings.auth_algorithm],
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected invalid token: {e}")
        return None

    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        return None
    org_id = payload.get("org_id")
    return CurrentUser(user_id=str(user_id), org_id=str(org_id) if org_id else None)


async def require_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Require a valid bearer token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
        )

    user = decode_token(credentials.credentials, settings)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user
