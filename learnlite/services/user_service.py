"""
learnlite/services/user_service.py
User administration and profile updates
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import fetch_page, is_unique_violation
from learnlite.errors import ErrorCode
from learnlite.exceptions import ConflictError, ForbiddenError, NotFoundError
from learnlite.orm.user import User, UserRole
from learnlite.services.auth_service import hash_password_async, normalize_email

logger = logging.getLogger(__name__)


class UserService:

    @classmethod
    async def list_users(
        cls,
        db: AsyncSession,
        page: int,
        limit: int,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> Tuple[List[User], int]:
        stmt = select(User)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(or_(User.email.ilike(pattern), User.name.ilike(pattern)))
        if role is not None:
            stmt = stmt.where(User.role == role)
        stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
        return await fetch_page(db, stmt, page, limit)

    @classmethod
    async def get_user(cls, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found", ErrorCode.USER_NOT_FOUND)
        return user

    @classmethod
    async def update_user(
        cls,
        db: AsyncSession,
        user_id: int,
        data: Dict[str, Any],
        actor: User,
    ) -> User:
        """Update name, email or password. Allowed for the user themself or an admin."""
        if actor.role != UserRole.admin and actor.id != user_id:
            raise ForbiddenError("You can only update your own profile", ErrorCode.FORBIDDEN)

        user = await cls.get_user(db, user_id)
        if data.get("name") is not None:
            user.name = data["name"].strip()
        if data.get("email") is not None:
            user.email = normalize_email(data["email"])
        if data.get("password") is not None:
            user.password_hash = await hash_password_async(data["password"])

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise ConflictError("Email is already registered", ErrorCode.EMAIL_EXISTS)
            raise
        await db.refresh(user)
        return user

    @classmethod
    async def delete_user(cls, db: AsyncSession, user_id: int, actor: User) -> None:
        if actor.id == user_id:
            raise ForbiddenError("Admins cannot delete their own account", ErrorCode.FORBIDDEN)
        user = await cls.get_user(db, user_id)
        await db.delete(user)
        await db.commit()
        logger.info(f"User {user_id} deleted by admin {actor.id}")
