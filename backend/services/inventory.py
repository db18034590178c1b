from __future__ import annotations

import logging
from datetime import date, datetime, time

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import Product, StockMovement
from backend.app.db.models.core_types import AuditAction, MovementType
from backend.services import audit
from backend.services.errors import (
    ConcurrentUpdateError,
    InvalidOperation,
    NoOpError,
    NotFoundError,
    ValidationError,
)
from backend.services.paging import paginate

logger = logging.getLogger(__name__)


DIRECTION_LABELS = {
    MovementType.stock_in: "added",
    MovementType.stock_out: "removed",
    MovementType.adjustment: "adjusted",
}


def _insufficient_stock(current_stock: int, requested: int) -> InvalidOperation:
    return InvalidOperation(
        f"Insufficient stock. Current stock: {current_stock}, Requested: {requested}"
    )


def compute_delta(movement_type: MovementType, quantity: int, current_stock: int) -> int:
    """
    Signed change to apply to ``current_stock``.

    Business rules:
        IN          -> +|quantity|, quantity must not be 0
        OUT         -> -|quantity|, quantity must not be 0,
                       refused if stock would go negative
        ADJUSTMENT  -> quantity is the TARGET level, not a delta:
                       delta = target - current_stock
                       refused if target < 0 or target == current_stock
    """
    if movement_type in (MovementType.stock_in, MovementType.stock_out) and quantity == 0:
        raise ValidationError("Quantity must be greater than zero")

    if movement_type is MovementType.stock_in:
        return abs(quantity)

    if movement_type is MovementType.stock_out:
        delta = -abs(quantity)
        if current_stock + delta < 0:
            raise _insufficient_stock(current_stock, abs(delta))
        return delta

    if movement_type is MovementType.adjustment:
        target = quantity
        if target < 0:
            raise ValidationError("Target stock cannot be negative for adjustment")
        delta = target - current_stock
        if delta == 0:
            raise NoOpError("Target stock is same as current stock. No adjustment needed.")
        return delta

    raise ValidationError(f"Unknown movement type: {movement_type!r}")


def _coerce_type(movement_type: MovementType | str) -> MovementType:
    try:
        return MovementType(movement_type)
    except ValueError:
        raise ValidationError(f"Invalid movement type: {movement_type!r}") from None


def _lock_product(db: Session, product_id: int, organization_id: int) -> Product:
    product = (
        db.execute(
            select(Product)
            .where(Product.id == product_id)
            .where(Product.organization_id == organization_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )
    if not product:
        raise NotFoundError("Product not found")
    return product


def _increment_stock(
    db: Session,
    product: Product,
    *,
    movement_type: MovementType,
    observed: int,
    delta: int,
) -> None:
    """
    In-SQL increment, guarded so a concurrent writer cannot drive the
    counter negative (IN/OUT) or invalidate the computed target (ADJUSTMENT).
    """
    if movement_type is MovementType.adjustment:
        guard = Product.current_stock == observed
    else:
        guard = Product.current_stock + delta >= 0

    result = db.execute(
        update(Product)
        .where(Product.id == product.id)
        .where(guard)
        .values(current_stock=Product.current_stock + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    if movement_type is MovementType.stock_out:
        fresh = db.execute(
            select(Product.current_stock).where(Product.id == product.id)
        ).scalar_one()
        raise _insufficient_stock(fresh, abs(delta))
    raise ConcurrentUpdateError(
        "Product stock changed while the adjustment was being applied. Please retry."
    )


def apply_movement(
    db: Session,
    *,
    product_id: int,
    organization_id: int,
    user_id: int | None,
    movement_type: MovementType | str,
    quantity: int,
    reason: str,
) -> StockMovement:
    """
    Apply one stock movement to a product.

    The movement row and the counter update are committed together or not
    at all. The audit entry is written after the commit and its failure is
    swallowed (see ``audit.record_safely``).
    """
    movement_type = _coerce_type(movement_type)

    try:
        product = _lock_product(db, product_id, organization_id)
        product_name = product.name
        before = product.current_stock

        delta = compute_delta(movement_type, quantity, before)

        _increment_stock(db, product, movement_type=movement_type, observed=before, delta=delta)

        mv = StockMovement(
            product_id=product.id,
            organization_id=organization_id,
            user_id=user_id,
            quantity=delta,
            type=movement_type,
            reason=reason,
        )
        db.add(mv)
        db.commit()
    except Exception:
        db.rollback()
        raise

    after = before + delta
    logger.info(
        "stock movement %s applied: product=%s org=%s delta=%+d stock %d -> %d",
        movement_type.value,
        product_id,
        organization_id,
        delta,
        before,
        after,
    )

    audit.record_safely(
        db,
        user_id=user_id,
        organization_id=organization_id,
        action=AuditAction.stock_movement,
        entity_type="StockMovement",
        entity_id=mv.id,
        description=(
            f'Stock {DIRECTION_LABELS[movement_type]} for product "{product_name}": '
            f"{abs(delta)} units. Reason: {reason}"
        ),
        old_value=str(before),
        new_value=str(after),
    )

    return mv


def day_bounds(start_date: date | None, end_date: date | None) -> tuple[datetime | None, datetime | None]:
    """Whole-day bounds: start at 00:00:00, end at 23:59:59.999999."""
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date, time.max) if end_date else None
    return start, end


def movements_query(
    organization_id: int,
    *,
    product_id: int | None = None,
    movement_type: MovementType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
):
    stmt = (
        select(StockMovement)
        .options(
            selectinload(StockMovement.product).selectinload(Product.category),
            selectinload(StockMovement.user),
        )
        .where(StockMovement.organization_id == organization_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    )

    if product_id is not None:
        stmt = stmt.where(StockMovement.product_id == product_id)

    if movement_type is not None:
        stmt = stmt.where(StockMovement.type == movement_type)

    start, end = day_bounds(start_date, end_date)
    if start is not None:
        stmt = stmt.where(StockMovement.created_at >= start)
    if end is not None:
        stmt = stmt.where(StockMovement.created_at <= end)

    return stmt


def list_movements(
    db: Session,
    organization_id: int,
    *,
    page: int = 1,
    limit: int = 100,
    product_id: int | None = None,
    movement_type: MovementType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict:
    stmt = movements_query(
        organization_id,
        product_id=product_id,
        movement_type=movement_type,
        start_date=start_date,
        end_date=end_date,
    )
    return paginate(db, stmt, page=page, limit=limit)
