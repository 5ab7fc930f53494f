import logging

from app.core.exceptions import DuplicateError, UnauthorizedError
from app.core.security import get_password_hash, verify_password
from app.schemas.base import parse_input
from app.schemas.user import UserCreate, UserLogin
from app.storage.base import Storage

logger = logging.getLogger(__name__)


async def register_user(storage: Storage, user_in):
    user_in = parse_input(UserCreate, user_in)
    if await storage.get_user_by_email(user_in.email):
        raise DuplicateError("A user with this email already exists.")

    user = await storage.create_user({
        "email": user_in.email,
        "hashed_password": get_password_hash(user_in.password),
        "first_name": user_in.first_name,
        "last_name": user_in.last_name,
    })
    logger.info(f"👤 Registered user {user.id}")
    return user


async def authenticate(storage: Storage, credentials):
    credentials = parse_input(UserLogin, credentials)
    user = await storage.get_user_by_email(credentials.email)

    is_verified = False
    if user:
        try:
            is_verified = verify_password(credentials.password, user.hashed_password)
        except ValueError as e:
            # Unknown or corrupt hash in the row
            logger.warning(f"⚠️ [Login] Password verification failed for {credentials.email}: {e}")

    if not user or not is_verified:
        raise UnauthorizedError("Incorrect email or password")
    return user
