"""
learnlite/services/auth_service.py
Password hashing, registration and login
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.config.feature_flags import feature_flags
from learnlite.config.settings import settings
from learnlite.database import is_unique_violation
from learnlite.errors import ErrorCode
from learnlite.exceptions import AuthenticationError, ConflictError, ForbiddenError
from learnlite.orm.user import User, UserRole
from learnlite.security.rbac import create_access_token

logger = logging.getLogger(__name__)

# bcrypt blocks the event loop - hashing runs in a small thread pool
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

_executor = None


def get_executor():
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=4)
    return _executor


async def hash_password_async(password: str) -> str:
    """Async-friendly password hashing that doesn't block the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(), pwd_context.hash, password)


async def verify_password_async(plain: str, hashed: str) -> bool:
    """Async-friendly password verification that doesn't block the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(), pwd_context.verify, plain, hashed)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:

    @classmethod
    async def create_user(
        cls,
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
        role: UserRole,
    ) -> User:
        """Insert a user; a duplicate email surfaces as EMAIL_EXISTS."""
        user = User(
            email=normalize_email(email),
            password_hash=await hash_password_async(password),
            name=name.strip(),
            role=role,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise ConflictError("Email is already registered", ErrorCode.EMAIL_EXISTS)
            raise
        await db.refresh(user)
        logger.info(f"Created user {user.id} with role {user.role.value}")
        return user

    @classmethod
    async def register(
        cls,
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
        role: Optional[UserRole] = None,
    ) -> Tuple[User, str]:
        """Public self-registration. Admin accounts need FEATURE_OPEN_ADMIN_SIGNUP."""
        role = role or UserRole.student
        if role == UserRole.admin and not feature_flags.is_enabled("FEATURE_OPEN_ADMIN_SIGNUP"):
            raise ForbiddenError("Admin accounts cannot be self-registered", ErrorCode.FORBIDDEN)

        user = await cls.create_user(db, email, password, name, role)
        return user, create_access_token(user)

    @classmethod
    async def login(cls, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        result = await db.execute(select(User).where(User.email == normalize_email(email)))
        user = result.scalar_one_or_none()

        if user is None or not await verify_password_async(password, user.password_hash):
            logger.warning(f"Failed login for {normalize_email(email)}")
            raise AuthenticationError("Invalid email or password", ErrorCode.INVALID_CREDENTIALS)

        return user, create_access_token(user)
