from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Category, Product, StockMovement
from backend.app.db.models.core_types import ProductStatus
from backend.services import catalog

TREND_DAYS = 30
# capacity estimate: a slot holds ten times the reorder threshold
CAPACITY_FACTOR = 10


def low_stock_report(db: Session, organization_id: int) -> dict:
    products = catalog.low_stock_products(db, organization_id)
    return {"count": len(products), "products": products}


def stock_summary(db: Session, organization_id: int) -> dict:
    active = Product.status == ProductStatus.active
    in_org = Product.organization_id == organization_id

    row = db.execute(
        select(
            func.count(Product.id),
            func.coalesce(func.sum(Product.current_stock), 0),
        ).where(in_org)
    ).one()

    active_count = db.execute(select(func.count(Product.id)).where(in_org, active)).scalar_one()
    low_count = db.execute(
        select(func.count(Product.id)).where(in_org, active, Product.current_stock <= Product.minimum_stock)
    ).scalar_one()
    out_count = db.execute(
        select(func.count(Product.id)).where(in_org, active, Product.current_stock == 0)
    ).scalar_one()

    return {
        "total_products": int(row[0]),
        "active_products": int(active_count),
        "total_stock_items": int(row[1]),
        "low_stock_count": int(low_count),
        "out_of_stock_count": int(out_count),
    }


def _percent_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def _valuation_timeline(db: Session, organization_id: int, checkpoints: list[datetime]) -> list[float]:
    """
    Inventory value (cost x stock) at each checkpoint.

    Stock at a past instant is the current stock minus every movement
    recorded after that instant.
    """
    products = db.execute(
        select(Product.id, Product.cost_price, Product.current_stock)
        .where(Product.organization_id == organization_id)
    ).all()
    if not products:
        return [0.0 for _ in checkpoints]

    earliest = min(checkpoints)
    movements = db.execute(
        select(StockMovement.product_id, StockMovement.quantity, StockMovement.created_at)
        .where(StockMovement.organization_id == organization_id)
        .where(StockMovement.created_at > earliest)
    ).all()

    def _naive(dt: datetime) -> datetime:
        return dt.replace(tzinfo=None) if dt.tzinfo else dt

    values = []
    for checkpoint in checkpoints:
        cp = _naive(checkpoint)
        later = defaultdict(int)
        for product_id, quantity, created_at in movements:
            if _naive(created_at) > cp:
                later[product_id] += quantity
        total = sum(
            float(cost) * max(stock - later[pid], 0)
            for pid, cost, stock in products
        )
        values.append(round(total, 2))
    return values


def monthly_kpis(db: Session, organization_id: int, *, today: date | None = None) -> dict:
    today = today or datetime.now(timezone.utc).date()
    now = datetime.combine(today, time.max)
    last_month_end = datetime.combine(today.replace(day=1), time.min) - timedelta(microseconds=1)

    days = [today - timedelta(days=i) for i in range(TREND_DAYS - 1, -1, -1)]
    checkpoints = [datetime.combine(d, time.max) for d in days]

    this_month, last_month = _valuation_timeline(db, organization_id, [now, last_month_end])
    trend = _valuation_timeline(db, organization_id, checkpoints)

    stock = db.execute(
        select(
            func.coalesce(func.sum(Product.current_stock), 0),
            func.coalesce(func.sum(Product.minimum_stock), 0),
        ).where(Product.organization_id == organization_id)
    ).one()
    total_stock, total_minimum = int(stock[0]), int(stock[1])
    capacity_max = total_minimum * CAPACITY_FACTOR
    capacity = round(total_stock / capacity_max * 100, 1) if capacity_max else 0.0

    return {
        "inventory": {
            "this_month": this_month,
            "last_month": last_month,
            "change": _percent_change(this_month, last_month),
            "trend": [{"date": d.isoformat(), "value": v} for d, v in zip(days, trend)],
        },
        "warehouse_capacity": {
            "total_stock": total_stock,
            "estimated_capacity": capacity_max,
            "utilization": capacity,
        },
    }


def inventory_distribution(db: Session, organization_id: int) -> list[dict]:
    rows = db.execute(
        select(Category.name, func.coalesce(func.sum(Product.current_stock), 0))
        .join(Category, Category.id == Product.category_id)
        .where(Product.organization_id == organization_id)
        .group_by(Category.name)
        .order_by(Category.name)
    ).all()
    return [{"name": name or "Other", "value": int(value)} for name, value in rows]
