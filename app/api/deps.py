"""
FastAPI dependencies for tenant resolution and database access.
Tokens are issued by the auth service; only the tenant claim is used here.
"""

import uuid
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.services.manual_quote_service import ManualQuoteService

settings = get_settings()
security = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an internal JWT.
    Raises JWTError on a bad signature or an expired token.
    """
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"verify_aud": False},
    )


async def get_tenant_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> uuid.UUID:
    """
    Dependency to get the tenant ID from the bearer token's tenant_id claim.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise credentials_exception

    tenant_id = payload.get("tenant_id")
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User has no associated tenant",
        )

    try:
        return uuid.UUID(str(tenant_id))
    except (ValueError, TypeError):
        raise credentials_exception


# Type aliases for cleaner dependency injection
TenantId = Annotated[uuid.UUID, Depends(get_tenant_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_manual_quote_service(db: DbSession, tenant_id: TenantId) -> ManualQuoteService:
    return ManualQuoteService(
        db,
        tenant_id,
        max_recalc_attempts=settings.pricing_recalc_max_attempts,
    )


ManualQuotes = Annotated[ManualQuoteService, Depends(get_manual_quote_service)]
