from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, func
from .base import Base


DISCOUNT_KINDS = ("percentage", "fixed")


class Discount(Base):
    __tablename__ = "discount"

    id = Column(String(36), primary_key=True)
    code = Column(String(64), nullable=False, unique=True)  # stored upper-cased
    kind = Column(String(16), nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    min_order_amount = Column(Numeric(12, 2), nullable=False, default=0)
    max_discount_amount = Column(Numeric(12, 2), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
