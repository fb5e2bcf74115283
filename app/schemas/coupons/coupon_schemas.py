from pydantic import BaseModel, Field, ConfigDict
from typing import List

from app.models.coupons.coupon_models import NAME_MAX_LENGTH, USER_ID_MAX_LENGTH


# =====================================================
# BASE
# =====================================================
class StrictPayload(BaseModel):
    # Unknown fields and type coercion are both rejected
    model_config = ConfigDict(extra="forbid", strict=True)


# =====================================================
# INPUTS
# =====================================================
class CouponCreate(StrictPayload):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    amount: int = Field(ge=0)


class CouponClaim(StrictPayload):
    user_id: str = Field(min_length=1, max_length=USER_ID_MAX_LENGTH)
    coupon_name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


# =====================================================
# OUTPUT
# =====================================================
class CouponDetailsOut(BaseModel):
    name: str
    amount: int
    remaining_amount: int
    claimed_by: List[str] = Field(default_factory=list)
