"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies resolving the current user from the users collection
- `require(action)` dependency backed by the central policy table
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings
from app.core.errors import Unauthorized
from app.core.policy import Action, enforce
from app.db.mongodb import MongoPool, get_pool
from app.services.mongo_service import UserService

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; a missing header is handled below so every
# auth failure answers with the same {"error": ...} body.
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _user_from_token(token: str, pool: MongoPool) -> Optional[dict]:
    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        return None

    user = UserService(pool).get_by_id(payload["sub"])
    if not user:
        return None

    return {
        "user_id": str(user["_id"]),
        "name": user.get("name", ""),
        "email": user.get("email", ""),
        "role": user.get("role", "user"),
    }


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    pool: MongoPool = Depends(get_pool),
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise Unauthorized()
    user = _user_from_token(credentials.credentials, pool)
    if user is None:
        raise Unauthorized("Invalid or expired token")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    pool: MongoPool = Depends(get_pool),
) -> Optional[dict]:
    """Dependency - the current user, or None for anonymous requests."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, pool)


def require(action: Action) -> Callable:
    """
    Dependency factory - authenticated user allowed to perform `action`.

    Usage:
        @router.get("/admin/thing")
        async def route(admin: dict = Depends(require(Action.moderate_listing))):
            ...
    """
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        enforce(user["role"], action)
        return user

    return dependency
