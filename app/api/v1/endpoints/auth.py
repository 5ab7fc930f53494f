from fastapi import APIRouter, Depends, status
from app.schemas.user import UserCreate, UserResponse, UserLogin, Token
from app.services import user_service
from app.core import security
from app.api.deps import get_current_user
from app.models.user import User
from app.storage.base import Storage
from app.storage.factory import get_storage

router = APIRouter()


def _token_for(user: User) -> dict:
    return {
        "access_token": security.create_access_token(user.id),
        "token_type": "bearer",
        "user": user,
    }


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register_user(user_in: UserCreate, storage: Storage = Depends(get_storage)):
    user = await user_service.register_user(storage, user_in)
    # Auto-login after registration
    return _token_for(user)


@router.post("/login", response_model=Token)
async def login(user_in: UserLogin, storage: Storage = Depends(get_storage)):
    user = await user_service.authenticate(storage, user_in)
    return _token_for(user)


@router.get("/user", response_model=UserResponse)
async def read_user_me(current_user: User = Depends(get_current_user)):
    return current_user
