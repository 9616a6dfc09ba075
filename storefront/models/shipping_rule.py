from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, func
from .base import Base


class ShippingRule(Base):
    __tablename__ = "shipping_rule"

    id = Column(String(36), primary_key=True)
    pincode_start = Column(String(16), nullable=False)
    pincode_end = Column(String(16), nullable=False)
    state = Column(String(128), nullable=False)
    delivery_days = Column(Integer, nullable=False)
    shipping_charge = Column(Numeric(12, 2), nullable=False)
    is_cod_available = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
