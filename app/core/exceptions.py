from fastapi import HTTPException
from app.constants.error_codes import ErrorCode
from app.constants.claim_outcome import ClaimOutcome


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


# =====================================================
# COUPON DOMAIN ERRORS
# =====================================================
class CouponError(Exception):
    """Expected outcome of a coupon operation that the caller must see.

    ``status_code`` and ``error_code`` give the transport mapping; claim
    verdicts also carry their ``outcome``.
    """

    status_code: int = 500
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    outcome: ClaimOutcome | None = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCouponRequest(CouponError):
    status_code = 400
    error_code = ErrorCode.VALIDATION_ERROR


class CouponAlreadyExists(CouponError):
    status_code = 400
    error_code = ErrorCode.COUPON_ALREADY_EXISTS

    def __init__(self, name: str):
        super().__init__(f"coupon already exists: {name}")
        self.name = name


class CouponNotFound(CouponError):
    status_code = 400
    error_code = ErrorCode.COUPON_NOT_FOUND
    outcome = ClaimOutcome.NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"coupon not found: {name}")
        self.name = name


class CouponAlreadyClaimed(CouponError):
    status_code = 409
    error_code = ErrorCode.COUPON_ALREADY_CLAIMED
    outcome = ClaimOutcome.ALREADY_CLAIMED

    def __init__(self, name: str, user_id: str):
        super().__init__("coupon already claimed")
        self.name = name
        self.user_id = user_id


class CouponOutOfStock(CouponError):
    status_code = 409
    error_code = ErrorCode.COUPON_OUT_OF_STOCK
    outcome = ClaimOutcome.OUT_OF_STOCK

    def __init__(self, name: str):
        super().__init__("coupon out of stock")
        self.name = name


class StoreFailure(CouponError):
    """The store could not complete the operation; the transaction was rolled back."""

    status_code = 500
    error_code = ErrorCode.COUPON_STORE_FAILURE
    outcome = ClaimOutcome.STORE_FAILURE


class DuplicateCouponName(Exception):
    """Raised by the store when the coupons primary key rejects an insert."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name
