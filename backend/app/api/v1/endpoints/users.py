from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin
from backend.app.db.models.core_types import AuditAction, UserRole
from backend.app.db.models.models_v1 import User
from backend.app.schemas.user import UserRead
from backend.services import audit

router = APIRouter(prefix="/users")


@router.get("", response_model=list[UserRead])
def list_users(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return (
        db.execute(
            select(User)
            .where(User.organization_id == admin.organization_id)
            .order_by(User.created_at.desc(), User.id.desc())
        )
        .scalars()
        .all()
    )


@router.delete("/{user_id}", response_model=UserRead)
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    user = db.execute(
        select(User)
        .where(User.id == user_id)
        .where(User.organization_id == admin.organization_id)
    ).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.role is UserRole.admin:
        admins = db.execute(
            select(func.count(User.id))
            .where(User.organization_id == admin.organization_id)
            .where(User.role == UserRole.admin)
        ).scalar_one()
        if admins <= 1:
            raise HTTPException(status_code=400, detail="Cannot delete the last admin user")

    deleted = UserRead.model_validate(user)
    db.delete(user)
    db.commit()

    audit.record_safely(
        db,
        user_id=admin.id,
        organization_id=admin.organization_id,
        action=AuditAction.delete,
        entity_type="User",
        entity_id=user_id,
        description=f'User "{deleted.name}" ({deleted.email}) deleted',
    )
    return deleted
