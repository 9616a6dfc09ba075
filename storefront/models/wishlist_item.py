from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, func
from .base import Base


class WishlistItem(Base):
    __tablename__ = "wishlist_item"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),)

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
