from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl

from fruitflow.models.product import ProductUnit
from fruitflow.schemas.ai import DistanceEstimate
from fruitflow.schemas.user import UserResponse


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=3)
    description: str = Field(..., min_length=10)
    price: float = Field(..., gt=0)
    unit: ProductUnit = ProductUnit.ITEM
    stock_quantity: int = Field(0, ge=0)
    category: str | None = None
    image_url: HttpUrl | None = None
    produced_date: datetime
    produced_area: str = Field(..., min_length=2)
    produced_by_organization: str = Field(..., min_length=2)


class ProductUpdate(BaseModel):
    """Provenance fields are fixed at creation."""

    name: str | None = Field(None, min_length=3)
    description: str | None = Field(None, min_length=10)
    price: float | None = Field(None, gt=0)
    unit: ProductUnit | None = None
    stock_quantity: int | None = Field(None, ge=0)
    category: str | None = None
    image_url: HttpUrl | None = None


class ProductOut(BaseModel):
    id: UUID
    supplier_id: UUID
    name: str
    description: str
    price: float
    unit: ProductUnit
    stock_quantity: int
    category: str | None = None
    image_url: str | None = None
    produced_date: datetime
    produced_area: str
    produced_by_organization: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SupplierCatalog(BaseModel):
    supplier: UserResponse
    products: list[ProductOut]
    purchase_count: int


class ShippingEstimate(BaseModel):
    product_id: UUID
    origin: str
    destination: str
    estimate: DistanceEstimate
    estimated_fee: float | None = None
