# app/services/coupons/coupon_service.py
"""Claim engine: the policy layer between the HTTP surface and the store.

Each call makes exactly one attempt against the store. Nothing here retries:
a claim whose commit outcome is unknown (timeout, lost connection) is reported
as ``StoreFailure`` and must be reconciled by the caller, since replaying it
would turn a hidden success into ``CouponAlreadyClaimed``.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.claim_outcome import ClaimOutcome
from app.core.exceptions import (
    CouponError,
    CouponAlreadyExists,
    DuplicateCouponName,
    InvalidCouponRequest,
)
from app.schemas.coupons.coupon_schemas import CouponCreate, CouponClaim, CouponDetailsOut
from app.services.coupons import coupon_store
from app.utils.logger import get_logger

logger = get_logger(__name__)


# ---------------- VALIDATION ----------------
def _require(value: str, field: str) -> None:
    if not value:
        raise InvalidCouponRequest(f"{field} is required")


def outcome_of(exc: BaseException | None) -> ClaimOutcome:
    """Terminal verdict of a claim given the exception it raised (None on success)."""
    if exc is None:
        return ClaimOutcome.OK
    if isinstance(exc, CouponError) and exc.outcome is not None:
        return exc.outcome
    return ClaimOutcome.STORE_FAILURE


# ---------------- CREATE ----------------
async def create_coupon(db: AsyncSession, payload: CouponCreate) -> None:
    _require(payload.name, "name")
    if payload.amount < 0:
        raise InvalidCouponRequest("amount must be >= 0")

    # Fast path only; the primary key decides races
    if await coupon_store.coupon_exists(db, payload.name):
        raise CouponAlreadyExists(payload.name)

    try:
        await coupon_store.insert_coupon(db, payload.name, payload.amount)
    except DuplicateCouponName:
        logger.info("Lost coupon creation race", extra={"coupon_name": payload.name})
        raise CouponAlreadyExists(payload.name) from None


# ---------------- CLAIM ----------------
async def claim_coupon(db: AsyncSession, payload: CouponClaim) -> None:
    _require(payload.user_id, "user_id")
    _require(payload.coupon_name, "coupon_name")

    await coupon_store.claim_coupon(db, payload.coupon_name, payload.user_id)


# ---------------- DETAILS ----------------
async def get_coupon_details(db: AsyncSession, name: str) -> CouponDetailsOut:
    _require(name, "name")
    return await coupon_store.get_coupon_details(db, name)
