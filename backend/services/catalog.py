from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import Product
from backend.app.db.models.core_types import ProductStatus

EXPIRING_SOON_DAYS = 30


def products_query(
    organization_id: int,
    *,
    search: str | None = None,
    category_id: int | None = None,
    status: ProductStatus | None = None,
    expired: bool = False,
    expiring_soon: bool = False,
    active_expiration: bool = False,
    has_expiration_date: bool = False,
    today: date | None = None,
) -> Select:
    """
    Products of one organization, newest update first.

    The expiration flags are exclusive, first one set wins:
    expired > expiring_soon > active_expiration > has_expiration_date.
    """
    stmt = (
        select(Product)
        .options(selectinload(Product.category))
        .where(Product.organization_id == organization_id)
        .order_by(Product.updated_at.desc(), Product.id.desc())
    )

    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
                Product.description.ilike(pattern),
            )
        )

    if category_id is not None:
        stmt = stmt.where(Product.category_id == category_id)

    if status is not None:
        stmt = stmt.where(Product.status == status)

    today = today or date.today()
    horizon = today + timedelta(days=EXPIRING_SOON_DAYS)
    if expired:
        stmt = stmt.where(Product.expiration_date.is_not(None), Product.expiration_date < today)
    elif expiring_soon:
        stmt = stmt.where(Product.expiration_date >= today, Product.expiration_date <= horizon)
    elif active_expiration:
        stmt = stmt.where(Product.expiration_date > horizon)
    elif has_expiration_date:
        stmt = stmt.where(Product.expiration_date.is_not(None))

    return stmt


def get_product(db: Session, organization_id: int, product_id: int) -> Product | None:
    return db.execute(
        select(Product)
        .options(selectinload(Product.category))
        .where(Product.id == product_id)
        .where(Product.organization_id == organization_id)
    ).scalar_one_or_none()


def low_stock_products(db: Session, organization_id: int) -> list[Product]:
    """Active products at or below their reorder threshold, emptiest first."""
    return list(
        db.execute(
            select(Product)
            .options(selectinload(Product.category))
            .where(Product.organization_id == organization_id)
            .where(Product.status == ProductStatus.active)
            .where(Product.current_stock <= Product.minimum_stock)
            .order_by(Product.current_stock.asc(), Product.id.asc())
        )
        .scalars()
        .all()
    )


def out_of_stock_products(db: Session, organization_id: int) -> list[Product]:
    return list(
        db.execute(
            select(Product)
            .options(selectinload(Product.category))
            .where(Product.organization_id == organization_id)
            .where(Product.status == ProductStatus.active)
            .where(Product.current_stock == 0)
            .order_by(Product.name.asc())
        )
        .scalars()
        .all()
    )


def expiration_stats(db: Session, organization_id: int, *, today: date | None = None) -> dict:
    today = today or date.today()
    horizon = today + timedelta(days=EXPIRING_SOON_DAYS)

    products = (
        db.execute(
            select(Product)
            .options(selectinload(Product.category))
            .where(Product.organization_id == organization_id)
            .where(Product.expiration_date.is_not(None))
            .order_by(Product.expiration_date.asc())
        )
        .scalars()
        .all()
    )

    expired = [p for p in products if p.expiration_date < today]
    expiring_soon = [p for p in products if today <= p.expiration_date <= horizon]
    active = [p for p in products if p.expiration_date > horizon]

    return {
        "total": len(products),
        "expired": len(expired),
        "expiring_soon": len(expiring_soon),
        "active": len(active),
        "expired_products": expired,
        "expiring_soon_products": expiring_soon,
        "active_products": active,
    }
