from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from kernelpanel.db.repository import Repository
from kernelpanel.db.session import get_db
from kernelpanel.models import User, UserStatus
from kernelpanel.schemas.base import MAX_INT32
from kernelpanel.schemas.users import UserCreate, UserListResponse, UserResponse, UserUpdate
from kernelpanel.services.audit import write_audit
from kernelpanel.services.auth import AdminContext, get_current_admin
from kernelpanel.services.users import create_user, rotate_sublink, update_user

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(get_current_admin)])

SORTABLE_COLUMNS = {
    "created_at": User.created_at,
    "username": User.username,
    "data_used_gb": User.data_used_gb,
    "validity_period_days": User.validity_period_days,
}


def _get_user(db: Session, user_id: str) -> User:
    return Repository(db, User).get_or_404(user_id, "user_not_found")


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create(payload: UserCreate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> User:
    user = create_user(db, payload.model_dump())
    write_audit(db, admin.username, "user.created", "user", user.id, {"username": user.username, "kernel_id": user.kernel_id})
    db.commit()
    db.refresh(user)
    return user


@router.get("", response_model=UserListResponse)
def list_users(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0, le=MAX_INT32),
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    status_filter: Optional[str] = Query(default=None, pattern="^(active|inactive|expired|banned)$"),
    kernel_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> UserListResponse:
    order_col = SORTABLE_COLUMNS.get(sort_by, User.created_at)
    order_exp = asc(order_col) if sort_order == "asc" else desc(order_col)

    criteria = []
    if status_filter:
        criteria.append(User.status == UserStatus(status_filter))
    if kernel_id:
        criteria.append(User.kernel_id == kernel_id)

    users = Repository(db, User)
    items = users.list(*criteria, order_by=[order_exp], offset=offset, limit=limit)
    return UserListResponse(items=items, total=users.count(*criteria))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)) -> User:
    return _get_user(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> User:
    user = _get_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    update_user(db, user, changes)
    write_audit(db, admin.username, "user.updated", "user", user.id, {"fields": sorted(changes)})
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}")
def delete(user_id: str, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> dict:
    user = _get_user(db, user_id)
    Repository(db, User).delete(user.id)
    write_audit(db, admin.username, "user.deleted", "user", user_id, {"username": user.username})
    db.commit()
    return {"ok": True}


@router.post("/{user_id}/rotate-sublink", response_model=UserResponse)
def rotate(user_id: str, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> User:
    user = _get_user(db, user_id)
    previous = rotate_sublink(db, user)
    write_audit(db, admin.username, "user.sublink_rotated", "user", user.id, {"previous": previous})
    db.commit()
    db.refresh(user)
    return user


@router.post("/{user_id}/reset-usage", response_model=UserResponse)
def reset_usage(user_id: str, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> User:
    user = _get_user(db, user_id)
    previous = user.data_used_gb
    user.data_used_gb = 0
    write_audit(db, admin.username, "user.usage_reset", "user", user.id, {"previous_gb": previous})
    db.commit()
    db.refresh(user)
    return user
