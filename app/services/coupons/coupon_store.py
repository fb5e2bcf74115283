# app/services/coupons/coupon_store.py
"""Transactional persistence for coupons and claim history.

Every public function runs exactly one transaction on the caller's session
and ends it (commit on success, rollback on any failure) before returning,
so a pooled connection is never pinned between operations.

Concurrent claims on the same coupon are ordered by the exclusive lock on the
coupon row (``SELECT ... FOR UPDATE``). On SQLite, which has no row locks, the
engine opens every transaction with ``BEGIN IMMEDIATE`` instead (see
``app.core.db``). The ``claim_history_unique`` constraint stays the last line
of defence for the one-claim-per-user rule.
"""

import asyncio
from typing import Any, Awaitable, Callable

from sqlalchemy import select, func, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import DB_OPERATION_TIMEOUT
from app.core.exceptions import (
    CouponError,
    CouponAlreadyClaimed,
    CouponNotFound,
    CouponOutOfStock,
    DuplicateCouponName,
    StoreFailure,
)
from app.models.coupons.coupon_models import Coupon, ClaimHistory
from app.schemas.coupons.coupon_schemas import CouponDetailsOut
from app.utils.logger import get_logger

logger = get_logger(__name__)

# SQLSTATE unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    # asyncpg errors reach us wrapped by the SQLAlchemy adapter
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


async def _rollback(db: AsyncSession, operation: str, context: dict) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback failed", extra={"operation": operation, **context})


async def _run(
    db: AsyncSession,
    operation: str,
    work: Callable[[], Awaitable[Any]],
    *,
    timeout: float | None,
    context: dict,
) -> Any:
    async def _transaction():
        result = await work()
        await db.commit()
        return result

    try:
        return await asyncio.wait_for(_transaction(), timeout)
    except (CouponError, DuplicateCouponName):
        await _rollback(db, operation, context)
        raise
    except asyncio.TimeoutError:
        await _rollback(db, operation, context)
        logger.error(
            "Store operation timed out",
            extra={"operation": operation, "timeout": timeout, **context},
        )
        raise StoreFailure(f"{operation} timed out") from None
    except asyncio.CancelledError:
        await _rollback(db, operation, context)
        logger.warning("Store operation cancelled", extra={"operation": operation, **context})
        raise
    except SQLAlchemyError as exc:
        await _rollback(db, operation, context)
        logger.error(
            "Store operation failed",
            extra={"operation": operation, "error": str(exc), **context},
        )
        raise StoreFailure(f"{operation} failed") from exc


# =====================================================
# COUPON EXISTS
# =====================================================
async def coupon_exists(
    db: AsyncSession,
    name: str,
    *,
    timeout: float | None = DB_OPERATION_TIMEOUT,
) -> bool:
    context = {"coupon_name": name}
    logger.info("Check coupon existence", extra=context)

    async def work() -> bool:
        return bool(await db.scalar(select(exists().where(Coupon.name == name))))

    found = await _run(db, "coupon_exists", work, timeout=timeout, context=context)
    logger.info("Coupon existence checked", extra={**context, "exists": found})
    return found


# =====================================================
# INSERT COUPON
# =====================================================
async def insert_coupon(
    db: AsyncSession,
    name: str,
    amount: int,
    *,
    timeout: float | None = DB_OPERATION_TIMEOUT,
) -> None:
    context = {"coupon_name": name, "amount": amount}
    logger.info("Insert coupon", extra=context)

    async def work() -> None:
        db.add(Coupon(name=name, amount=amount))
        try:
            await db.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                logger.warning("Coupon name already taken", extra=context)
                raise DuplicateCouponName(name) from exc
            raise

    await _run(db, "insert_coupon", work, timeout=timeout, context=context)
    logger.info("Coupon inserted", extra=context)


# =====================================================
# CLAIM COUPON
# =====================================================
async def claim_coupon(
    db: AsyncSession,
    coupon_name: str,
    user_id: str,
    *,
    timeout: float | None = DB_OPERATION_TIMEOUT,
) -> None:
    context = {"coupon_name": coupon_name, "user_id": user_id}
    logger.info("Start coupon claim", extra=context)

    async def work() -> None:
        # 1. Same-user retries answer here without touching the coupon lock
        already_claimed = await db.scalar(
            select(
                exists().where(
                    ClaimHistory.coupon_name == coupon_name,
                    ClaimHistory.user_id == user_id,
                )
            )
        )
        if already_claimed:
            logger.warning("Coupon already claimed", extra=context)
            raise CouponAlreadyClaimed(coupon_name, user_id)

        # 2. Exclusive lock on the coupon row, held until commit / rollback
        amount = await db.scalar(
            select(Coupon.amount)
            .where(Coupon.name == coupon_name)
            .with_for_update()
        )
        if amount is None:
            logger.warning("Coupon not found", extra=context)
            raise CouponNotFound(coupon_name)

        # 3. Separate statement so READ COMMITTED sees claims committed
        #    while we were waiting for the lock
        used = await db.scalar(
            select(func.count())
            .select_from(ClaimHistory)
            .where(ClaimHistory.coupon_name == coupon_name)
        )
        if amount - used <= 0:
            logger.warning(
                "Coupon out of stock",
                extra={**context, "amount": amount, "used": used},
            )
            raise CouponOutOfStock(coupon_name)

        # 4. Record the claim
        db.add(ClaimHistory(coupon_name=coupon_name, user_id=user_id))
        try:
            await db.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                logger.warning("Concurrent claim by the same user", extra=context)
                raise CouponAlreadyClaimed(coupon_name, user_id) from exc
            raise

    await _run(db, "claim_coupon", work, timeout=timeout, context=context)
    logger.info("Coupon claimed", extra=context)


# =====================================================
# COUPON DETAILS
# =====================================================
async def get_coupon_details(
    db: AsyncSession,
    name: str,
    *,
    timeout: float | None = DB_OPERATION_TIMEOUT,
) -> CouponDetailsOut:
    context = {"coupon_name": name}
    logger.info("Get coupon details", extra=context)

    async def work() -> CouponDetailsOut:
        result = await db.execute(
            select(Coupon.name, Coupon.amount, ClaimHistory.user_id)
            .outerjoin(ClaimHistory, ClaimHistory.coupon_name == Coupon.name)
            .where(Coupon.name == name)
        )
        rows = result.all()
        if not rows:
            logger.warning("Coupon not found", extra=context)
            raise CouponNotFound(name)

        amount = rows[0].amount
        claimed_by = [row.user_id for row in rows if row.user_id is not None]
        return CouponDetailsOut(
            name=rows[0].name,
            amount=amount,
            remaining_amount=max(amount - len(claimed_by), 0),
            claimed_by=claimed_by,
        )

    details = await _run(db, "get_coupon_details", work, timeout=timeout, context=context)
    logger.info(
        "Coupon details retrieved",
        extra={**context, "remaining": details.remaining_amount},
    )
    return details
