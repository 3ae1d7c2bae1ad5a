"""
Shared router dependencies: admin authentication, ingestion config and clock.
"""
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from footfall.core.clock import Clock, utcnow
from footfall.core.config import IngestionConfig, settings
from footfall.core.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def require_admin(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> dict[str, Any]:
    """Verify the bearer token and require an admin role."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if claims.get("role") not in settings.admin_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return claims


def get_ingestion_config(request: Request) -> IngestionConfig:
    return request.app.state.ingestion_config


def get_clock() -> Clock:
    return utcnow


AdminClaims = Annotated[dict[str, Any], Depends(require_admin)]
IngestionSettings = Annotated[IngestionConfig, Depends(get_ingestion_config)]
ClockDep = Annotated[Clock, Depends(get_clock)]
