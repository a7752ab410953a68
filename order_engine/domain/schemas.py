# order_engine/domain/schemas.py
import re
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

_PHONE_RE = re.compile(r"^09\d{8}$")
_PHONE_SEPARATORS = re.compile(r"[-\s]")


class ShippingAddress(BaseModel):
    """Dane odbiorcy. Telefon: lokalny numer komórkowy 09 + 8 cyfr."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, max_length=200)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if not _PHONE_RE.match(_PHONE_SEPARATORS.sub("", value)):
            raise ValueError("nieprawidłowy format numeru telefonu")
        return value


class OrderCreate(BaseModel):
    """Schema dla tworzenia zamówienia z koszyka."""

    shipping_address: ShippingAddress
    notes: str | None = Field(None, max_length=500)


class OrderItemOut(BaseModel):
    id: int
    product_id: int | None
    product_name: str
    product_price: Decimal
    quantity: int
    total_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    order_number: str
    status: str
    total_amount: Decimal
    shipping_address: ShippingAddress
    notes: str | None = None
    items: List[OrderItemOut]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CartItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(..., gt=0, description="Ilość produktu (musi być > 0)")


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0, description="0 usuwa pozycję z koszyka")


class CartLineOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    price: Decimal
    current_price: Decimal
    stock: int
    status: str


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: int | None
    items: List[CartLineOut]
    total_items: int
    total_amount: Decimal


class CartWarning(BaseModel):
    type: str  # STOCK_ADJUSTED, PRICE_CHANGED, LOW_STOCK
    message: str
    original_quantity: int | None = None
    adjusted_quantity: int | None = None
    original_price: Decimal | None = None
    current_price: Decimal | None = None


class AddToCartOut(BaseModel):
    item: CartLineOut
    warnings: List[CartWarning] = []
