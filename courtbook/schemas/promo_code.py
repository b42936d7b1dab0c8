"""Pydantic schemas for promo codes."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from courtbook.models import DiscountType, PromoCode


class PromoCodeCreate(BaseModel):
    """Payload for creating promo codes."""

    code: str = Field(min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value: Decimal = Field(gt=Decimal("0"))
    max_total_uses: int | None = Field(default=None, ge=1)
    expires_at: datetime.datetime | None = None

    @model_validator(mode="after")
    def _check_percentage(self) -> "PromoCodeCreate":
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class PromoCodeToggle(BaseModel):
    active: bool


class PromoCodeRead(BaseModel):
    """Serialized promo code with derived usage figures."""

    id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    max_total_uses: int | None
    usage_count: int
    remaining_uses: int | None
    active: bool
    expires_at: datetime.datetime
    is_expired: bool
    created_at: datetime.datetime

    @classmethod
    def from_model(cls, promo: PromoCode, *, is_expired: bool) -> "PromoCodeRead":
        return cls(
            id=promo.id,
            code=promo.code,
            discount_type=promo.discount_type,
            discount_value=promo.discount_value,
            max_total_uses=promo.max_total_uses,
            usage_count=promo.redemption_count,
            remaining_uses=promo.remaining_uses,
            active=promo.active,
            expires_at=promo.expires_at,
            is_expired=is_expired,
            created_at=promo.created_at,
        )


class PromoValidateRequest(BaseModel):
    code: str = Field(min_length=1)
    customer_phone: str = Field(min_length=3, max_length=32)
    amount: Decimal = Field(ge=Decimal("0"))


class PromoValidateRead(BaseModel):
    valid: bool
    message: str
    discount: Decimal | None = None
    final_amount: Decimal | None = None
    promo_code_id: uuid.UUID | None = None
