# app/routers/coupons/coupon_router.py

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.claim_outcome import ClaimOutcome
from app.schemas.coupons.coupon_schemas import CouponCreate, CouponClaim, CouponDetailsOut
from app.services.coupons.coupon_service import (
    create_coupon,
    claim_coupon,
    get_coupon_details,
    outcome_of,
)
from app.utils.logger import get_logger

router = APIRouter(prefix="/api/coupons", tags=["Coupons"])
logger = get_logger(__name__)


def _log_claim(payload: CouponClaim, outcome: ClaimOutcome) -> None:
    logger.info(
        "Claim coupon",
        extra={
            "coupon_name": payload.coupon_name,
            "user_id": payload.user_id,
            "outcome": outcome.value,
        },
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_class=Response)
async def create_coupon_api(
    payload: CouponCreate,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Create coupon", extra={"coupon_name": payload.name})
    await create_coupon(db, payload)
    return Response(status_code=status.HTTP_201_CREATED)


@router.post("/claim", status_code=status.HTTP_201_CREATED, response_class=Response)
async def claim_coupon_api(
    payload: CouponClaim,
    db: AsyncSession = Depends(get_db),
):
    try:
        await claim_coupon(db, payload)
    except Exception as exc:
        _log_claim(payload, outcome_of(exc))
        raise

    _log_claim(payload, outcome_of(None))
    return Response(status_code=status.HTTP_201_CREATED)


@router.get("/", include_in_schema=False)
async def missing_coupon_name_api():
    raise AppException(400, "coupon name required", ErrorCode.VALIDATION_ERROR)


@router.get("/{name}", response_model=CouponDetailsOut)
async def get_coupon_details_api(
    name: str,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Get coupon details", extra={"coupon_name": name})
    return await get_coupon_details(db, name)
