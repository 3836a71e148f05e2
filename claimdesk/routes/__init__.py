"""API route modules."""

from .claims import router as claims_router
from .users import limiter
from .users import router as users_router

__all__ = ["claims_router", "users_router", "limiter"]
