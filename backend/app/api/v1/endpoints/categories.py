from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_admin
from backend.app.db.models.core_types import AuditAction
from backend.app.db.models.models_v1 import Category, Product, User
from backend.app.schemas.category import CategoryCreate, CategoryRead, CategoryUpdate
from backend.services import audit

router = APIRouter(prefix="/categories")


def _product_count(db: Session, category_id: int) -> int:
    return db.execute(
        select(func.count(Product.id)).where(Product.category_id == category_id)
    ).scalar_one()


def _read(db: Session, c: Category) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "created_at": c.created_at,
        "updated_at": c.updated_at,
        "product_count": _product_count(db, c.id),
    }


def _get_category(db: Session, organization_id: int, category_id: int) -> Category:
    c = db.execute(
        select(Category)
        .where(Category.id == category_id)
        .where(Category.organization_id == organization_id)
    ).scalar_one_or_none()
    if not c:
        raise HTTPException(status_code=404, detail="Category not found")
    return c


def _name_taken(db: Session, organization_id: int, name: str) -> bool:
    return db.execute(
        select(Category.id)
        .where(Category.organization_id == organization_id)
        .where(Category.name == name)
    ).first() is not None


@router.get("", response_model=list[CategoryRead])
def list_categories(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = db.execute(
        select(Category)
        .where(Category.organization_id == user.organization_id)
        .order_by(Category.created_at.desc(), Category.id.desc())
    ).scalars().all()
    return [_read(db, c) for c in rows]


@router.get("/{category_id}", response_model=CategoryRead)
def get_category(category_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _read(db, _get_category(db, user.organization_id, category_id))


@router.post("", response_model=CategoryRead)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    name = payload.name.strip()
    if _name_taken(db, admin.organization_id, name):
        raise HTTPException(status_code=409, detail="Category with this name already exists")

    c = Category(organization_id=admin.organization_id, name=name, description=payload.description)
    db.add(c)
    db.commit()
    db.refresh(c)

    audit.record_safely(
        db,
        user_id=admin.id,
        organization_id=admin.organization_id,
        action=AuditAction.create,
        entity_type="Category",
        entity_id=c.id,
        description=f'Category "{name}" created',
    )
    return _read(db, c)


@router.patch("/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    c = _get_category(db, admin.organization_id, category_id)
    old_name = c.name

    if payload.name is not None:
        name = payload.name.strip()
        if name != old_name and _name_taken(db, admin.organization_id, name):
            raise HTTPException(status_code=409, detail="Category with this name already exists")
        c.name = name
    if payload.description is not None:
        c.description = payload.description

    db.commit()
    db.refresh(c)

    if c.name != old_name:
        audit.record_safely(
            db,
            user_id=admin.id,
            organization_id=admin.organization_id,
            action=AuditAction.update,
            entity_type="Category",
            entity_id=category_id,
            description=f'Category "{c.name}" updated: Name: "{old_name}" -> "{c.name}"',
            old_value=old_name,
            new_value=c.name,
        )
    return _read(db, c)


@router.delete("/{category_id}", response_model=CategoryRead)
def delete_category(category_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    c = _get_category(db, admin.organization_id, category_id)

    in_use = _product_count(db, c.id)
    if in_use > 0:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete category. {in_use} product(s) are using this category.",
        )

    deleted = _read(db, c)
    db.delete(c)
    db.commit()

    audit.record_safely(
        db,
        user_id=admin.id,
        organization_id=admin.organization_id,
        action=AuditAction.delete,
        entity_type="Category",
        entity_id=category_id,
        description=f'Category "{deleted["name"]}" deleted',
    )
    return deleted
