"""
learnlite/security/rbac.py
Centralized role-based access control

Tokens carry the user id in "sub"; the user and their role are always
reloaded from the database so a deleted account stops working immediately.
Route modules use the dependencies defined here instead of manual role checks.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, ExpiredSignatureError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.config.settings import settings
from learnlite.database import get_db
from learnlite.errors import ErrorCode
from learnlite.exceptions import AuthenticationError, ForbiddenError
from learnlite.orm.user import User, UserRole

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ================= TOKEN UTILS =================

def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for a user"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {
        "sub": str(user.id),
        "role": user.role.value,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate an access token, raising AuthenticationError when unusable."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired", ErrorCode.AUTH_EXPIRED)
    except JWTError:
        raise AuthenticationError("Invalid token", ErrorCode.UNAUTHORIZED)

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type", ErrorCode.UNAUTHORIZED)
    return payload


def _user_id_from(payload: dict) -> int:
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token subject", ErrorCode.UNAUTHORIZED)


# ================= AUTH DEPENDENCIES =================

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get the authenticated user from the bearer token."""
    if not token:
        raise AuthenticationError("Authentication required", ErrorCode.UNAUTHORIZED)

    payload = decode_token(token)
    user = await db.get(User, _user_id_from(payload))
    if user is None:
        logger.warning(f"Token for missing user {payload.get('sub')}")
        raise AuthenticationError("User no longer exists", ErrorCode.UNAUTHORIZED)
    return user


async def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous requests and bad tokens yield None."""
    if not token:
        return None
    try:
        payload = decode_token(token)
        return await db.get(User, _user_id_from(payload))
    except AuthenticationError:
        return None


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
        current_user: User = Depends(require_roles(UserRole.admin))
    """
    allowed = frozenset(roles)

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(
                f"User {current_user.id} with role {current_user.role.value} denied; "
                f"requires one of {sorted(r.value for r in allowed)}"
            )
            raise ForbiddenError("Insufficient permissions", ErrorCode.FORBIDDEN)
        return current_user

    return role_checker


require_admin = require_roles(UserRole.admin)
require_staff = require_roles(UserRole.admin, UserRole.instructor)
require_student = require_roles(UserRole.student)

