"""Shared helpers for driving the claim engine with one session per request."""

from __future__ import annotations

from app.constants.claim_outcome import ClaimOutcome
from app.core.exceptions import CouponError
from app.schemas.coupons.coupon_schemas import CouponClaim, CouponCreate
from app.services.coupons import coupon_service


async def create(session_factory, name: str, amount: int) -> None:
    async with session_factory() as db:
        await coupon_service.create_coupon(db, CouponCreate(name=name, amount=amount))


async def claim(session_factory, coupon_name: str, user_id: str) -> ClaimOutcome:
    async with session_factory() as db:
        try:
            await coupon_service.claim_coupon(
                db, CouponClaim(user_id=user_id, coupon_name=coupon_name)
            )
        except CouponError as exc:
            return coupon_service.outcome_of(exc)
    return ClaimOutcome.OK


async def details(session_factory, name: str):
    async with session_factory() as db:
        return await coupon_service.get_coupon_details(db, name)
