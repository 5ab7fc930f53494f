from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
BCRYPT_MAX_BYTES = 72


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Signed bearer token whose subject is the user id."""
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(user_id), "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """User id from a valid token, None for anything expired or forged."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return claims.get("sub")


def _bcrypt_safe(password: str) -> str:
    # bcrypt accepts at most 72 bytes
    raw = (password or "").encode("utf-8")
    if len(raw) <= BCRYPT_MAX_BYTES:
        return password or ""
    return raw[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    # Accounts without a local password never match
    if not hashed_password:
        return False
    return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)
