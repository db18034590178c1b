"""
CSV exports of products, audit history and stock-movement history.

Every cell is quoted, one row per record, header first.
"""

from __future__ import annotations

import csv
from datetime import date, datetime

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import AuditLog
from backend.app.db.models.core_types import AuditAction, MovementType, ProductStatus
from backend.services import catalog, inventory

PRODUCT_COLUMNS = [
    "ID",
    "Name",
    "SKU",
    "Category",
    "Description",
    "Cost Price",
    "Selling Price",
    "Current Stock",
    "Minimum Stock",
    "Unit",
    "Status",
    "Expiration Date",
    "Created At",
    "Updated At",
]

HISTORY_COLUMNS = [
    "Date",
    "Time",
    "User Name",
    "User Email",
    "User Role",
    "Action",
    "Entity Type",
    "Entity ID",
    "Description",
    "Old Value",
    "New Value",
]

STOCK_HISTORY_COLUMNS = [
    "Date",
    "Time",
    "Product Name",
    "SKU",
    "Category",
    "Type",
    "Quantity",
    "Reason",
    "User Name",
    "User Email",
    "User Role",
]


def to_csv(rows: list[list], columns: list[str]) -> str:
    df = pd.DataFrame(rows, columns=columns, dtype=object)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def _date(dt: datetime) -> str:
    return dt.strftime("%m/%d/%Y")


def _time(dt: datetime) -> str:
    return dt.strftime("%I:%M:%S %p")


def export_products(
    db: Session,
    organization_id: int,
    *,
    search: str | None = None,
    category_id: int | None = None,
    status: ProductStatus | None = None,
) -> str:
    stmt = catalog.products_query(
        organization_id,
        search=search,
        category_id=category_id,
        status=status,
    )
    rows = [
        [
            p.id,
            p.name,
            p.sku,
            p.category.name if p.category else "",
            p.description or "",
            f"{p.cost_price:.2f}",
            f"{p.selling_price:.2f}",
            p.current_stock,
            p.minimum_stock,
            p.unit,
            p.status.value,
            p.expiration_date.isoformat() if p.expiration_date else "",
            p.created_at.isoformat(),
            p.updated_at.isoformat(),
        ]
        for p in db.execute(stmt).scalars().all()
    ]
    return to_csv(rows, PRODUCT_COLUMNS)


def export_history(
    db: Session,
    organization_id: int,
    *,
    entity_type: str | None = None,
    action: AuditAction | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> str:
    stmt = (
        select(AuditLog)
        .options(selectinload(AuditLog.user))
        .where(AuditLog.organization_id == organization_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    )
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if action is not None:
        stmt = stmt.where(AuditLog.action == action)

    start, end = inventory.day_bounds(start_date, end_date)
    if start is not None:
        stmt = stmt.where(AuditLog.created_at >= start)
    if end is not None:
        stmt = stmt.where(AuditLog.created_at <= end)

    rows = []
    for log in db.execute(stmt).scalars().all():
        user = log.user
        rows.append(
            [
                _date(log.created_at),
                _time(log.created_at),
                user.name if user else "",
                user.email if user else "",
                user.role.value if user else "",
                log.action.value,
                log.entity_type,
                log.entity_id or "",
                log.description,
                log.old_value or "",
                log.new_value or "",
            ]
        )
    return to_csv(rows, HISTORY_COLUMNS)


def export_stock_history(
    db: Session,
    organization_id: int,
    *,
    movement_type: MovementType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> str:
    stmt = inventory.movements_query(
        organization_id,
        movement_type=movement_type,
        start_date=start_date,
        end_date=end_date,
    )

    rows = []
    for mv in db.execute(stmt).scalars().all():
        product = mv.product
        user = mv.user
        rows.append(
            [
                _date(mv.created_at),
                _time(mv.created_at),
                product.name,
                product.sku,
                product.category.name if product.category else "N/A",
                mv.type.value,
                mv.quantity,
                mv.reason,
                user.name if user else "",
                user.email if user else "",
                user.role.value if user else "",
            ]
        )
    return to_csv(rows, STOCK_HISTORY_COLUMNS)
