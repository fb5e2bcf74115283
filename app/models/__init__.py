# Coupons
from app.models.coupons.coupon_models import Coupon, ClaimHistory
