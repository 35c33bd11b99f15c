from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from lms.models.user_context import UserContext
from lms.repos.store import Store, store_scope
from lms.services import token_service

logger = logging.getLogger(__name__)

# Tokens are issued by the auth service; tokenUrl only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def user_context_from_token(raw_token: str) -> UserContext:
    """Validate a bearer token and build the caller's UserContext.

    Shared by the HTTP dependencies and the chat hub handshake.
    Raises jwt.InvalidTokenError (including a non-UUID `sub`).
    """
    claims = token_service.decode_access_token(raw_token)
    try:
        user_id = UUID(str(claims["sub"]))
    except ValueError:
        raise jwt.InvalidTokenError("sub is not a UUID") from None
    return UserContext(user_id=user_id, roles=frozenset(claims.get("roles", [])))


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> UserContext:
    """Extract and validate the JWT bearer token. Returns a UserContext."""
    try:
        user = user_context_from_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    logger.debug("Token validated for user=%s roles=%s", user.user_id, user.roles)
    return user


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("student"))
    Returns the UserContext if the role is present, else 403.
    """

    def _guard(
        user: Annotated[UserContext, Depends(require_user)],
    ) -> UserContext:
        if not user.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s", user.user_id, role
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _guard


async def get_store() -> AsyncGenerator[Store, None]:
    """One unit of work per request: committed on success, rolled back on error."""
    async with store_scope() as store:
        yield store


CurrentUser = Annotated[UserContext, Depends(require_user)]
Student = Annotated[UserContext, Depends(require_role("student"))]
StoreDep = Annotated[Store, Depends(get_store)]
