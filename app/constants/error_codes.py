# app/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # Generic
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Coupons
    COUPON_ALREADY_EXISTS = "COUPON_ALREADY_EXISTS"
    COUPON_NOT_FOUND = "COUPON_NOT_FOUND"
    COUPON_ALREADY_CLAIMED = "COUPON_ALREADY_CLAIMED"
    COUPON_OUT_OF_STOCK = "COUPON_OUT_OF_STOCK"
    COUPON_STORE_FAILURE = "COUPON_STORE_FAILURE"
