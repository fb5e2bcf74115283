from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint, CheckConstraint
from app.core.db import Base

NAME_MAX_LENGTH = 255
USER_ID_MAX_LENGTH = 255


class Coupon(Base):
    __tablename__ = "coupons"

    name = Column(String(NAME_MAX_LENGTH), primary_key=True)
    amount = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_coupon_amount_non_negative"),
    )

    def __repr__(self):
        return f"<Coupon name={self.name} amount={self.amount}>"


class ClaimHistory(Base):
    __tablename__ = "claim_history"

    # Surrogate key only; the natural key is (user_id, coupon_name)
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(USER_ID_MAX_LENGTH), nullable=False)
    coupon_name = Column(
        String(NAME_MAX_LENGTH),
        ForeignKey("coupons.name"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "coupon_name", name="claim_history_unique"),
    )

    def __repr__(self):
        return f"<ClaimHistory coupon={self.coupon_name} user={self.user_id}>"
