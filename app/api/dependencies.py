"""Bearer-token identity and role guards for the routers.

Tokens are issued elsewhere; this service only verifies them.  The
``sub`` claim is the user's UUID and ``roles`` lists platform roles.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.models.principal import Principal
from app.models.user import Role
from app.services import token_service
from app.services.otp_store import OtpStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Validate the bearer token and return the caller as a Principal."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s", principal.user_id, principal.roles
    )
    return principal


def require_role(*roles: Role):
    """Dependency factory: the caller must hold at least one of ``roles``.

    Usage: Depends(require_role("instructor", "admin"))
    """
    allowed = frozenset(roles)

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(allowed):
            logger.warning(
                "Access denied: user=%s roles=%s required one of=%s",
                principal.user_id,
                sorted(principal.roles),
                sorted(allowed),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def subject_id(principal: Principal) -> UUID:
    """The caller's user id.  A token whose sub is not a UUID is a bad request."""
    try:
        return principal.user_uuid
    except ValueError:
        logger.warning("Token subject is not a user id: %r", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token subject is not a valid user id",
        ) from None


def get_otp_store(request: Request) -> OtpStore:
    """The one-time-code store built at startup (Redis-backed when configured).

    Phone verification flows take it with Depends(get_otp_store); code
    delivery itself happens outside this service.
    """
    return request.app.state.otp_store
