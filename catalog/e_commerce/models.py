# Catalog tables: categories, products, reviews and the session-keyed cart/wishlist

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, ForeignKey, DateTime, JSON, Numeric, Float,
    CheckConstraint, UniqueConstraint, Index, event
)
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..core.config import DEFAULT_LOW_STOCK_THRESHOLD, DEFAULT_REORDER_LEVEL
from ..core.helpers import generate_id, utcnow


class Category(Base):
    __tablename__ = "categories"
    id = Column(String(40), primary_key=True, default=lambda: generate_id("cat"))
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(120), unique=True, nullable=False)
    description = Column(Text)
    parent_id = Column(String(40), ForeignKey("categories.id", ondelete="SET NULL"), index=True)
    image_url = Column(String(255))
    display_order = Column(Integer, default=0, index=True)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(String(40), primary_key=True, default=lambda: generate_id("prod"))
    sku = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(220), unique=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    short_description = Column(String(500))
    category_id = Column(String(40), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="USD")
    original_price = Column(Numeric(10, 2))

    # Inventory
    stock_quantity = Column(Integer, nullable=False, default=0, index=True)
    stock_status = Column(String(20), nullable=False, default="out_of_stock", index=True)
    low_stock_threshold = Column(Integer, nullable=False, default=DEFAULT_LOW_STOCK_THRESHOLD)
    reorder_level = Column(Integer, nullable=False, default=DEFAULT_REORDER_LEVEL)

    # Status and flags
    status = Column(String(20), nullable=False, default="active")
    is_active = Column(Boolean, default=True, index=True)
    is_featured = Column(Boolean, default=False, index=True)
    images = Column(JSON, default=list)

    # Ratings
    rating_average = Column(Float, default=0)
    rating_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    category = relationship("Category", back_populates="products")
    reviews = relationship("Review", back_populates="product", passive_deletes=True)


@event.listens_for(Product, "before_insert")
def _derive_stock_status(mapper, connection, target):
    # Imported here: the inventory package imports this module
    from ..inventory.stock import calculate_stock_status

    if target.stock_status is None:
        quantity = target.stock_quantity or 0
        threshold = target.low_stock_threshold if target.low_stock_threshold is not None else DEFAULT_LOW_STOCK_THRESHOLD
        target.stock_status = calculate_stock_status(quantity, threshold)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    id = Column(String(40), primary_key=True, default=lambda: generate_id("rev"))
    product_id = Column(String(40), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    author_name = Column(String(100), nullable=False)
    author_verified = Column(Boolean, default=False)
    rating = Column(Integer, nullable=False)
    title = Column(String(200))
    content = Column(Text, nullable=False)
    helpful_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    product = relationship("Product", back_populates="reviews")


class CartItems(Base):
    __tablename__ = "cart_items"
    id = Column(String(40), primary_key=True, default=lambda: generate_id("item"))
    session_id = Column(String(128), nullable=False, index=True)
    product_id = Column(String(40), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    selected_variants = Column(JSON)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    product = relationship("Product")


class WishlistItems(Base):
    __tablename__ = "wishlist_items"
    __table_args__ = (
        UniqueConstraint("session_id", "product_id", name="uq_wishlist_session_product"),
    )

    id = Column(String(40), primary_key=True, default=lambda: generate_id("wish"))
    session_id = Column(String(128), nullable=False, index=True)
    product_id = Column(String(40), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    product = relationship("Product")


Index("idx_products_category_status", Product.category_id, Product.status)
