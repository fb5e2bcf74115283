# app/routers/__init__.py

from .coupons.coupon_router import router as coupon_router


__all__ = [
"coupon_router",
]
