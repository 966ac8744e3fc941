"""
Request Dependencies

FastAPI dependencies shared by the routers:
- get_current_user: resolves the session cookie to a User or raises 401
- get_cad: loads the application configuration record
- require_feature: rejects requests to a feature the CAD has disabled

Dependencies are resolved before the request body is validated, so a
request without a valid session gets 401 even when its body is invalid.
On the Bleeter router the session is resolved before the feature gate.
"""

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_api.config import settings
from dispatch_api.database import get_db
from dispatch_api.models import Cad, Feature, User
from dispatch_api.repositories import AccountRepository, CadRepository
from dispatch_api.services.auth import verify_token


logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency that requires an authenticated user.

    1. Reads the JWT from the access token cookie
    2. Verifies signature and expiry
    3. Loads the user named by the "sub" claim

    Raises:
        HTTPException: 401 if any step fails
    """
    token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    payload = verify_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    # Token is valid, but the account might have been deleted since
    user = await AccountRepository(db).get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    return user


async def get_cad(db: AsyncSession = Depends(get_db)) -> Cad | None:
    return await CadRepository(db).get_current()


def require_feature(feature: Feature):
    """
    Build a dependency that returns 403 "featureDisabled" when the CAD lists
    `feature` in its disabled features. Without a CAD record every feature
    is enabled.
    """
    async def dependency(cad: Cad | None = Depends(get_cad)) -> None:
        if cad and feature.value in (cad.disabled_features or []):
            logger.debug(f"Rejected request to disabled feature {feature.value}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="featureDisabled"
            )

    return dependency
