"""
Authentication Routes

POST /auth/register - Register new user
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
DELETE /auth/me - Delete account (cascades to bookings, likes, listings)
"""

import logging

from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError

from app.core.auth import hash_password, verify_password, create_access_token, get_current_user, require
from app.core.errors import Forbidden, Unauthorized, ValidationError
from app.core.policy import Action
from app.db.mongodb import MongoPool, get_pool
from app.services.mongo_service import AccountService, UserService
from app.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse,
    AccountDeletedResponse, UserRole,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

SELF_SERVICE_ROLES = {UserRole.user, UserRole.owner}


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest, pool: MongoPool = Depends(get_pool)):
    """
    Register a new user account.

    Only student (user) and owner accounts can sign up here.
    """
    if request.role not in SELF_SERVICE_ROLES:
        raise Forbidden("This role cannot be self-registered")

    users = UserService(pool)
    if users.get_by_email(request.email):
        raise ValidationError("Email already registered")

    try:
        users.insert(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            role=request.role.value,
        )
    except DuplicateKeyError:
        raise ValidationError("Email already registered")

    return MessageResponse(message=f"Registered successfully as {request.role.value}. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, pool: MongoPool = Depends(get_pool)):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    user = UserService(pool).get_by_email(request.email)

    if not user or not user.get("password"):
        raise Unauthorized("Invalid email or password")

    if not verify_password(request.password, user["password"]):
        raise Unauthorized("Invalid email or password")

    user_id = str(user["_id"])
    role = user.get("role", "user")
    token = create_access_token(data={"sub": user_id, "role": role})

    return TokenResponse(access_token=token, user_id=user_id, role=role)


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user), pool: MongoPool = Depends(get_pool)):
    """Get current authenticated user's info."""
    doc = UserService(pool).get_by_id(user["user_id"])
    if doc is None:
        raise Unauthorized("Invalid or expired token")

    return UserResponse(
        user_id=str(doc["_id"]),
        name=doc.get("name", ""),
        email=doc.get("email", ""),
        role=doc.get("role", "user"),
        created_at=doc.get("createdAt"),
    )


@router.delete("/me", response_model=AccountDeletedResponse)
async def delete_me(
    user: dict = Depends(require(Action.manage_account)),
    pool: MongoPool = Depends(get_pool),
):
    """Delete the account and everything it owns."""
    removed = AccountService(pool).delete_account(user["user_id"])
    logger.info("Account %s deleted: %s", user["user_id"], removed)
    return AccountDeletedResponse(message="Account deleted successfully", removed=removed)
