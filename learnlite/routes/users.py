"""
learnlite/routes/users.py
User administration (admin) and profile updates (self or admin)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import envelope, paginated
from learnlite.orm.user import User
from learnlite.schemas import UserCreate, UserUpdate
from learnlite.security.rbac import get_current_user, require_admin
from learnlite.services.auth_service import AuthService
from learnlite.services.user_service import UserService
from learnlite.validators import clamp_pagination, sanitize_search, parse_role

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
async def list_users(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    page_no, page_size = clamp_pagination(page, limit)
    users, total = await UserService.list_users(
        db, page_no, page_size, search=sanitize_search(search), role=parse_role(role)
    )
    return paginated([u.to_dict() for u in users], total, page_no, page_size)


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await UserService.get_user(db, user_id)
    return envelope(user.to_dict())


@router.post("", status_code=201)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Admins may create accounts of any role."""
    user = await AuthService.create_user(db, payload.email, payload.password, payload.name, payload.role)
    return envelope(user.to_dict())


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"role"})
    user = await UserService.update_user(db, user_id, changes, current_user)
    return envelope(user.to_dict())


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    await UserService.delete_user(db, user_id, current_user)
    return envelope({"id": user_id, "deleted": True})
