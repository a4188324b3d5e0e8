from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey, DateTime, Text, Enum, Index, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from ecofinds.db.base_class import Base


class ProductCondition(str, enum.Enum):
    NEW = "New"
    LIKE_NEW = "Like New"
    USED = "Used"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    condition_type = Column(Enum(ProductCondition), nullable=False)
    image_url = Column(String(255), nullable=True)

    # Item details
    year_manufactured = Column(Integer, nullable=True)
    brand = Column(String(100), nullable=True)
    dimensions = Column(String(100), nullable=True)
    weight = Column(String(50), nullable=True)
    material = Column(String(100), nullable=True)
    has_warranty = Column(Boolean, default=False, nullable=False)
    has_manual = Column(Boolean, default=False, nullable=False)

    # Inventory ledger: written only through ecofinds.services.inventory
    quantity = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Sustainability
    is_eco_friendly = Column(Boolean, default=False, nullable=False)
    sustainability_score = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    seller = relationship("User", back_populates="products")
    category = relationship("Category", back_populates="products")
    wishlist_items = relationship("Wishlist", back_populates="product", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint(
            "sustainability_score IS NULL OR (sustainability_score >= 1 AND sustainability_score <= 100)",
            name="ck_products_sustainability_score_range",
        ),
    )

    @property
    def category_name(self):
        return self.category.name if self.category else None


# Composite indexes for performance
Index("idx_product_active_created", Product.is_active, Product.created_at)
Index("idx_product_seller", Product.seller_id)
Index("idx_product_price", Product.price)
