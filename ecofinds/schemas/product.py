from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

import bleach
from pydantic import BaseModel, Field, field_validator

from ecofinds.models.product import ProductCondition

SortOption = Literal["newest", "oldest", "price-low", "price-high", "sustainability"]


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


class ProductBase(BaseModel):
    year: Optional[int] = Field(default=None, ge=1900, le=datetime.utcnow().year)
    brand: Optional[str] = Field(default=None, max_length=100)
    dimensions: Optional[str] = Field(default=None, max_length=100)
    weight: Optional[str] = Field(default=None, max_length=50)
    material: Optional[str] = Field(default=None, max_length=100)
    sustainability_score: Optional[int] = Field(default=None, ge=1, le=100)


class ProductCreate(ProductBase):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=1000)
    price: Decimal = Field(..., ge=Decimal("0.01"), max_digits=10, decimal_places=2)
    category_id: int = Field(..., ge=1)
    condition: ProductCondition
    quantity: int = Field(default=1, ge=1)
    has_warranty: bool = False
    has_manual: bool = False
    is_eco_friendly: bool = False

    @field_validator("title", "description", "brand", "dimensions", "weight", "material")
    @classmethod
    def sanitize_text(cls, value: Optional[str]) -> Optional[str]:
        return _clean_text(value)


class ProductUpdate(ProductBase):
    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    price: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"), max_digits=10, decimal_places=2)
    condition: Optional[ProductCondition] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    has_warranty: Optional[bool] = None
    has_manual: Optional[bool] = None
    is_eco_friendly: Optional[bool] = None

    @field_validator("title", "description", "brand", "dimensions", "weight", "material")
    @classmethod
    def sanitize_text(cls, value: Optional[str]) -> Optional[str]:
        return _clean_text(value)


class ProductFilters(BaseModel):
    category: Optional[str] = None
    condition: Optional[ProductCondition] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    search: Optional[str] = None
    is_eco_friendly: Optional[bool] = None
    sort_by: SortOption = "newest"


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None

    class Config:
        from_attributes = True
