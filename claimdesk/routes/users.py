"""User account and login routes."""

import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from claimdesk.config import LOGIN_RATE_LIMIT
from claimdesk.models import LoginRequest, UserCreate, UserUpdate
from claimdesk.services import UserService
from claimdesk.storage import get_engine

logger = logging.getLogger(__name__)

# Shared with the app so RateLimitExceeded is handled there
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(tags=["users"])


@router.get("/api/users")
async def list_users(q: str | None = Query(None, description="Name, email or role substring")):
    """List user accounts."""
    return {"success": True, "data": UserService(get_engine()).list(q)}


@router.post("/api/users", status_code=201)
async def create_user(user: UserCreate):
    """Create a user account."""
    created = UserService(get_engine()).create(
        name=user.name, email=user.email, password=user.password, role=user.role
    )
    return {"success": True, "data": created, "message": "User created"}


@router.put("/api/users/{user_id}")
async def update_user(user_id: int, user: UserUpdate):
    """Update a user; the password only changes when a new one is given."""
    updated = UserService(get_engine()).update(
        user_id, name=user.name, email=user.email, password=user.password, role=user.role
    )
    return {"success": True, "data": updated, "message": "User updated"}


@router.delete("/api/users/{user_id}")
async def delete_user(
    user_id: int,
    acting_user_id: int | None = Query(None, description="Id of the user performing the delete"),
):
    """Delete a user account."""
    UserService(get_engine()).delete(user_id, acting_user_id=acting_user_id)
    return {"success": True, "data": None, "message": "User deleted"}


@router.post("/api/auth/login")
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(request: Request, credentials: LoginRequest):
    """Check credentials and return the user profile."""
    user = UserService(get_engine()).authenticate(credentials.email, credentials.password)
    if user is None:
        logger.warning(f"Failed login attempt from {get_remote_address(request)}")
        return JSONResponse(
            status_code=401,
            content={
                "success": False,
                "data": None,
                "error": "unauthorized",
                "message": "Invalid email or password",
            },
        )
    logger.info(f"User {user['id']} logged in")
    return {"success": True, "data": user}
