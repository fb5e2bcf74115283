# main.py
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.routers import coupon_router

from app.core.config import (
    APP_ENV,
    APP_NAME,
    APP_VERSION,
    APP_HOST,
    APP_PORT,
    ALLOWED_ORIGINS,
    DB_AUTO_CREATE,
)
from app.core.db import init_models, dispose_engine
from app.core.exceptions import AppException, CouponError
from app.core.logging import setup_logging
from app.middleware.request_logging import request_logging_middleware
from app.core.error_handlers import (
    app_exception_handler,
    coupon_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)

# ------------------------------------------------------------------------------
# LOGGING
# ------------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application", extra={"environment": APP_ENV})

    if DB_AUTO_CREATE:
        await init_models()
        logger.info("Database tables ensured")
    else:
        logger.info("DB_AUTO_CREATE disabled: schema creation skipped")

    yield

    logger.info("Shutting down application")
    await dispose_engine()


# ------------------------------------------------------------------------------
# APP INIT
# ------------------------------------------------------------------------------
app = FastAPI(
    title=APP_NAME,
    description="Fixed-stock promotional coupons with one claim per user",
    version=APP_VERSION,
    docs_url="/docs" if APP_ENV != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ------------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ------------------------------------------------------------------------------
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(CouponError, coupon_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ------------------------------------------------------------------------------
# MIDDLEWARE
# ------------------------------------------------------------------------------
app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------------------
# HEALTH CHECK
# ------------------------------------------------------------------------------
@app.get("/", tags=["Health"])
async def health_check():
    return {
        "status": "ok",
        "service": "coupon-claim-service",
        "environment": APP_ENV,
        "version": APP_VERSION,
    }

# ------------------------------------------------------------------------------
# ROUTERS
# ------------------------------------------------------------------------------
app.include_router(coupon_router)


def run() -> None:
    uvicorn.run(
        app,
        host=APP_HOST,
        port=APP_PORT,
        log_config=None,  # keep the dictConfig above
        timeout_graceful_shutdown=10,
    )


if __name__ == "__main__":
    run()
