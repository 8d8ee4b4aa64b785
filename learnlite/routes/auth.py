"""
learnlite/routes/auth.py
Registration, login and the current user's profile
"""
import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.config.settings import settings
from learnlite.database import get_db
from learnlite.errors import envelope
from learnlite.orm.user import User
from learnlite.schemas import AuthResult, UserLogin, UserRegister
from learnlite.security.rbac import get_current_user
from learnlite.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@router.post("/register", status_code=201)
async def register(
    payload: UserRegister,
    db: AsyncSession = Depends(get_db),
):
    """Create a student or instructor account and return a token."""
    user, token = await AuthService.register(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
    )
    return envelope(AuthResult(token=token, user=user.to_dict()).model_dump())


@router.post("/login")
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,
    payload: UserLogin,
    db: AsyncSession = Depends(get_db),
):
    user, token = await AuthService.login(db, payload.email, payload.password)
    logger.info(f"User {user.id} logged in")
    return envelope(AuthResult(token=token, user=user.to_dict()).model_dump())


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return envelope(current_user.to_dict())
