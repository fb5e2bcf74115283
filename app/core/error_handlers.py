from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException, CouponError, StoreFailure
import logging

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


def _error_body(message: str, error_code: ErrorCode, details=None) -> dict:
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": details,
    }


# -------------------------
# APP EXCEPTIONS
# -------------------------
async def app_exception_handler(request: Request, exc: AppException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, exc.error_code, exc.details),
    )


# -------------------------
# COUPON DOMAIN ERRORS
# -------------------------
async def coupon_exception_handler(request: Request, exc: CouponError):
    if isinstance(exc, StoreFailure):
        logger.error(
            "Coupon store failure",
            exc_info=exc,
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )
        # Driver details stay in the logs
        message = GENERIC_ERROR_MESSAGE
    else:
        message = exc.message

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, exc.error_code),
    )


# -------------------------
# FASTAPI VALIDATION
# -------------------------
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    return JSONResponse(
        status_code=400,
        content=_error_body(
            "Invalid request data",
            ErrorCode.VALIDATION_ERROR,
            jsonable_encoder(exc.errors()),
        ),
    )


# -------------------------
# HTTP EXCEPTIONS (mapped)
# -------------------------
HTTP_STATUS_TO_ERROR_CODE = {
    400: ErrorCode.VALIDATION_ERROR,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
}


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
):
    error_code = HTTP_STATUS_TO_ERROR_CODE.get(
        exc.status_code,
        ErrorCode.INTERNAL_ERROR,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, error_code),
    )


# -------------------------
# LAST RESORT
# -------------------------
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(GENERIC_ERROR_MESSAGE, ErrorCode.INTERNAL_ERROR),
    )
