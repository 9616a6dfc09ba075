from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, func
from sqlalchemy.orm import relationship
from .base import Base


ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")


class Order(Base):
    __tablename__ = "order"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    order_number = Column(String(32), nullable=False, unique=True)
    status = Column(String(32), nullable=False, default="pending")
    subtotal = Column(Numeric(16, 4), nullable=False)
    discount_amount = Column(Numeric(16, 4), nullable=False, default=0)
    discount_code = Column(String(64), nullable=True)
    shipping_charge = Column(Numeric(16, 4), nullable=False)
    tax_amount = Column(Numeric(16, 4), nullable=False, default=0)
    total_amount = Column(Numeric(16, 4), nullable=False)
    currency = Column(String(3), nullable=False)
    payment_method = Column(String(32), nullable=False)
    payment_status = Column(String(32), nullable=False, default="pending")
    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)
    pincode = Column(String(16), nullable=False)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_item"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("order.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=True)
    product_name = Column(String(255), nullable=False)
    variant_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(16, 4), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    order = relationship("Order", back_populates="items")
