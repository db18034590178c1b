from datetime import datetime

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import MovementType
from backend.app.schemas.product import ProductBrief
from backend.app.schemas.user import UserBrief


class StockMovementCreate(BaseModel):
    product_id: int
    # IN/OUT: magnitude. ADJUSTMENT: target stock level.
    quantity: int
    type: MovementType
    reason: str = Field(min_length=1, max_length=500)


class StockMovementRead(BaseModel):
    id: int
    product_id: int
    organization_id: int
    user_id: int | None
    quantity: int
    type: MovementType
    reason: str
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementDetail(StockMovementRead):
    product: ProductBrief
    user: UserBrief | None = None
