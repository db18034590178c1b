from datetime import datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None


class CategoryBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CategoryRead(CategoryBrief):
    description: str | None
    created_at: datetime
    updated_at: datetime
    product_count: int = 0
