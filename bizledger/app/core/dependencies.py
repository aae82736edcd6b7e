"""
Request dependencies for FastAPI.

Authentication yields the acting owner id; the store and the field resolver
are the process-scoped instances created in ``main.lifespan``.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from bizledger.app.core.jwt import decode_access_token, owner_id_from_claims
from bizledger.app.db.row_store import SqlRowStore
from bizledger.app.domain.schema.field_resolver import FieldResolver

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Raises:
        HTTPException: 401 if the token is invalid or carries no owner
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if owner_id_from_claims(payload) is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


async def get_current_owner(current_user: dict = Depends(get_current_user)) -> str:
    """Owner id every record is scoped to (``user_id`` claim, else ``sub``)."""
    return owner_id_from_claims(current_user)


def get_store(request: Request) -> SqlRowStore:
    return request.app.state.store


def get_field_resolver(request: Request) -> FieldResolver:
    return request.app.state.field_resolver
