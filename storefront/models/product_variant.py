"""
商品規格模型
每個規格（例如：尺寸、顏色）是一個有自己售價與庫存的子 SKU
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, func
from sqlalchemy.orm import relationship
from .base import Base


class ProductVariant(Base):
    """商品規格（子 SKU）"""
    __tablename__ = "product_variant"

    id = Column(String(36), primary_key=True)
    product_id = Column(String(36), ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    variant_name = Column(String(255), nullable=False)
    sku = Column(String(128), nullable=False, unique=True)
    price = Column(Numeric(12, 2), nullable=False)  # 規格售價，取代商品基本價
    stock_quantity = Column(Integer, nullable=True)  # None: untracked
    attributes = Column(JSON, nullable=True)  # 例如 {"size": "M", "color": "red"}
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    product = relationship("Product", back_populates="variants")

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_name": self.variant_name,
            "sku": self.sku,
            "price": float(self.price or 0),
            "stock_quantity": self.stock_quantity,  # None 表示不追蹤庫存
            "attributes": self.attributes or {},
            "is_active": bool(self.is_active),
        }
