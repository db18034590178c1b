from datetime import date, datetime

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import ProductStatus
from backend.app.schemas.category import CategoryBrief


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sku: str = Field(min_length=1, max_length=64)
    category_id: int
    description: str | None = None
    image_url: str | None = Field(default=None, max_length=512)
    cost_price: float = Field(ge=0)
    selling_price: float = Field(ge=0)
    current_stock: int = Field(default=0, ge=0)
    minimum_stock: int = Field(default=0, ge=0)
    unit: str = Field(default="unit", min_length=1, max_length=32)
    status: ProductStatus = ProductStatus.active
    expiration_date: date | None = None


class ProductUpdate(BaseModel):
    """Stock is only changed through stock movements, never here."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    category_id: int | None = None
    description: str | None = None
    image_url: str | None = Field(default=None, max_length=512)
    cost_price: float | None = Field(default=None, ge=0)
    selling_price: float | None = Field(default=None, ge=0)
    minimum_stock: int | None = Field(default=None, ge=0)
    unit: str | None = Field(default=None, min_length=1, max_length=32)
    status: ProductStatus | None = None
    expiration_date: date | None = None


class ProductBrief(BaseModel):
    id: int
    name: str
    sku: str
    category: CategoryBrief | None = None

    class Config:
        from_attributes = True


class ProductRead(ProductBrief):
    organization_id: int
    category_id: int
    description: str | None
    image_url: str | None
    cost_price: float
    selling_price: float
    current_stock: int
    minimum_stock: int
    unit: str
    status: ProductStatus
    expiration_date: date | None
    created_at: datetime
    updated_at: datetime


class ExpirationStats(BaseModel):
    total: int
    expired: int
    expiring_soon: int
    active: int
    expired_products: list[ProductRead]
    expiring_soon_products: list[ProductRead]
    active_products: list[ProductRead]
