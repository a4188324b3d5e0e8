from typing import Optional

import bleach
from pydantic import BaseModel, field_validator

from ecofinds.core.config import settings
from ecofinds.models.order import OrderStatus


class CheckoutRequest(BaseModel):
    shipping_address: Optional[str] = None

    @field_validator("shipping_address")
    @classmethod
    def validate_shipping_address(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        sanitized = bleach.clean(value, tags=[], attributes={}, strip=True).strip()
        if len(sanitized) > settings.MAX_SHIPPING_ADDRESS_LENGTH:
            raise ValueError(
                f"Shipping address too long (max {settings.MAX_SHIPPING_ADDRESS_LENGTH} chars)"
            )
        return sanitized or None


class CheckoutResult(BaseModel):
    order_id: int
    total_amount: float
    status: OrderStatus
    item_count: int


class CancelOrderResult(BaseModel):
    order_id: int
    status: OrderStatus
