from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin, require_staff
from backend.app.db.models.core_types import MovementType
from backend.app.db.models.models_v1 import User
from backend.app.schemas.common import Page
from backend.app.schemas.stock_movement import StockMovementCreate, StockMovementDetail, StockMovementRead
from backend.services import inventory

router = APIRouter(prefix="/stock")


@router.post("/move", response_model=StockMovementRead)
def move_stock(
    payload: StockMovementCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    mv = inventory.apply_movement(
        db,
        product_id=payload.product_id,
        organization_id=user.organization_id,
        user_id=user.id,
        movement_type=payload.type,
        quantity=payload.quantity,
        reason=payload.reason,
    )
    return StockMovementRead.model_validate(mv)


@router.get("/history", response_model=Page[StockMovementDetail])
def movement_history(
    page: int = 1,
    limit: int = 100,
    product_id: int | None = None,
    type: MovementType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return inventory.list_movements(
        db,
        admin.organization_id,
        page=page,
        limit=limit,
        product_id=product_id,
        movement_type=type,
        start_date=start_date,
        end_date=end_date,
    )
