from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_admin, require_staff
from backend.app.db.models.core_types import AuditAction, ProductStatus
from backend.app.db.models.models_v1 import Category, Product, User
from backend.app.schemas.common import Page
from backend.app.schemas.product import ExpirationStats, ProductCreate, ProductRead, ProductUpdate
from backend.services import audit, catalog
from backend.services.paging import paginate

router = APIRouter(prefix="/products")


def _sku_taken(db: Session, organization_id: int, sku: str) -> bool:
    return db.execute(
        select(Product.id)
        .where(Product.organization_id == organization_id)
        .where(Product.sku == sku)
    ).first() is not None


def _require_category(db: Session, organization_id: int, category_id: int) -> Category:
    c = db.execute(
        select(Category)
        .where(Category.id == category_id)
        .where(Category.organization_id == organization_id)
    ).scalar_one_or_none()
    if not c:
        raise HTTPException(status_code=404, detail="Category not found")
    return c


def _get_product(db: Session, organization_id: int, product_id: int) -> Product:
    p = catalog.get_product(db, organization_id, product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return p


@router.get("", response_model=Page[ProductRead])
def list_products(
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    category_id: int | None = None,
    status: ProductStatus | None = None,
    expired: bool = False,
    expiring_soon: bool = False,
    active_expiration: bool = False,
    has_expiration_date: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    stmt = catalog.products_query(
        user.organization_id,
        search=search,
        category_id=category_id,
        status=status,
        expired=expired,
        expiring_soon=expiring_soon,
        active_expiration=active_expiration,
        has_expiration_date=has_expiration_date,
    )
    return paginate(db, stmt, page=page, limit=limit)


@router.get("/low-stock", response_model=list[ProductRead])
def low_stock(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return catalog.low_stock_products(db, user.organization_id)


@router.get("/out-of-stock", response_model=list[ProductRead])
def out_of_stock(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return catalog.out_of_stock_products(db, user.organization_id)


@router.get("/expiration-stats", response_model=ExpirationStats)
def expiration_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return catalog.expiration_stats(db, user.organization_id)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _get_product(db, user.organization_id, product_id)


@router.post("", response_model=ProductRead)
def create_product(payload: ProductCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if _sku_taken(db, admin.organization_id, payload.sku):
        raise HTTPException(status_code=409, detail="Product with this SKU already exists")
    _require_category(db, admin.organization_id, payload.category_id)

    data = payload.model_dump()
    data["cost_price"] = Decimal(str(payload.cost_price))
    data["selling_price"] = Decimal(str(payload.selling_price))
    p = Product(organization_id=admin.organization_id, **data)
    db.add(p)
    db.commit()
    db.refresh(p)

    audit.record_safely(
        db,
        user_id=admin.id,
        organization_id=admin.organization_id,
        action=AuditAction.create,
        entity_type="Product",
        entity_id=p.id,
        description=f'Product "{p.name}" (SKU: {p.sku}) created',
    )
    return _get_product(db, admin.organization_id, p.id)


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    p = _get_product(db, user.organization_id, product_id)
    changes = payload.model_dump(exclude_unset=True)

    if "sku" in changes and changes["sku"] != p.sku and _sku_taken(db, user.organization_id, changes["sku"]):
        raise HTTPException(status_code=409, detail="Product with this SKU already exists")
    if changes.get("category_id") is not None and changes["category_id"] != p.category_id:
        _require_category(db, user.organization_id, changes["category_id"])

    old = {"name": p.name, "sku": p.sku, "status": p.status}

    for field, value in changes.items():
        if value is None and field not in ("description", "image_url", "expiration_date"):
            continue
        if field in ("cost_price", "selling_price"):
            value = Decimal(str(value))
        setattr(p, field, value)

    db.commit()
    db.refresh(p)

    summary = []
    if p.name != old["name"]:
        summary.append(f'Name: "{old["name"]}" -> "{p.name}"')
    if p.sku != old["sku"]:
        summary.append(f'SKU: "{old["sku"]}" -> "{p.sku}"')
    if p.status != old["status"]:
        summary.append(f'Status: "{old["status"].value}" -> "{p.status.value}"')
        audit.record_safely(
            db,
            user_id=user.id,
            organization_id=user.organization_id,
            action=AuditAction.status_change,
            entity_type="Product",
            entity_id=product_id,
            description=f'Product "{p.name}" status changed',
            old_value=old["status"].value,
            new_value=p.status.value,
        )
    if summary:
        audit.record_safely(
            db,
            user_id=user.id,
            organization_id=user.organization_id,
            action=AuditAction.update,
            entity_type="Product",
            entity_id=product_id,
            description=f'Product "{p.name}" updated: {", ".join(summary)}',
        )

    return _get_product(db, user.organization_id, product_id)


@router.delete("/{product_id}", response_model=ProductRead)
def delete_product(product_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    p = _get_product(db, admin.organization_id, product_id)
    deleted = ProductRead.model_validate(p)

    # movements go with the product
    db.delete(p)
    db.commit()

    audit.record_safely(
        db,
        user_id=admin.id,
        organization_id=admin.organization_id,
        action=AuditAction.delete,
        entity_type="Product",
        entity_id=product_id,
        description=f'Product "{deleted.name}" (SKU: {deleted.sku}) deleted',
    )
    return deleted
