from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.exceptions import UnauthorizedError
from app.core.security import decode_access_token
from app.models.user import User
from app.storage.base import Storage
from app.storage.factory import get_storage

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    storage: Storage = Depends(get_storage),
) -> User:
    """Resolve the bearer token to a user; anything else is a 401."""
    if credentials is None:
        raise UnauthorizedError()

    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        raise UnauthorizedError()

    user = await storage.get_user(user_id)
    if user is None:
        raise UnauthorizedError()
    return user
