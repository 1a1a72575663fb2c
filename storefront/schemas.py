from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from typing import Annotated, Optional, List
from decimal import Decimal
from datetime import datetime
from enum import Enum

NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

# --- catalog ---
class ProductBase(BaseModel):
    name: NonEmpty
    description: Optional[str] = ''
    price: Decimal = Field(ge=0, decimal_places=2)
    category: NonEmpty
    stock: int = Field(default=0, ge=0)
class ProductCreate(ProductBase):
    images: List[str] = []
class ProductRead(ProductBase):
    id: int
    seller_email: str
    images: List[str] = []
    rating_count: int = 0
    average_rating: Optional[float] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

    @field_validator("images", mode="before")
    @classmethod
    def _image_urls(cls, v):
        return [getattr(i, "url", i) for i in (v or [])]

class RatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ''
class RatingRead(RatingCreate):
    user_email: str
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

# --- orders ---
class ShippingAddress(BaseModel):
    street: NonEmpty
    city: NonEmpty
    state: NonEmpty
    zip_code: NonEmpty
    country: NonEmpty

class OrderItemIn(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0, decimal_places=2)

class PaymentInfoIn(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None

class OrderCreate(BaseModel):
    items: List[OrderItemIn] = Field(min_length=1)
    shipping_address: ShippingAddress
    payment_method: NonEmpty = "stripe"
    payment_info: Optional[PaymentInfoIn] = None

class OrderItemRead(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal

class PaymentInfoRead(BaseModel):
    method: str
    external_reference: Optional[str] = None
    external_status: Optional[str] = None

class OrderRead(BaseModel):
    id: int
    user_email: str
    items: List[OrderItemRead]
    shipping_address: ShippingAddress
    total_price: Decimal
    status: OrderStatus
    payment_info: PaymentInfoRead
    created_at: datetime

class OrderEnvelope(BaseModel):
    order: OrderRead

class OrderList(BaseModel):
    orders: List[OrderRead] = []

class StatusUpdate(BaseModel):
    status: OrderStatus
