from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, func
from .base import Base


class CartItem(Base):
    __tablename__ = "cart_item"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_cart_item_quantity_positive"),)

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    variant_id = Column(String(36), ForeignKey("product_variant.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    added_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
