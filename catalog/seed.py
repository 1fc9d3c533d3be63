"""
Seed data for a fresh catalog database.

Run ``python -m catalog.seed`` to create the tables, the default
categories and a handful of demo products.
"""
from decimal import Decimal
import logging

from sqlalchemy.orm import Session

from .core.config import DEFAULT_LOW_STOCK_THRESHOLD
from .core.database import SessionLocal, init_db, transaction
from .core.helpers import slugify
from .e_commerce.models import Category, Product
from .inventory.stock import calculate_stock_status

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Electronics", "Electronic devices and accessories"),
    ("Clothing", "Fashion and apparel"),
    ("Books", "Books and reading materials"),
    ("Home & Garden", "Home improvement and garden supplies"),
    ("Sports", "Sports equipment and outdoor gear"),
]

DEMO_PRODUCTS = [
    {
        "sku": "WH-2024-001",
        "name": "Premium Wireless Headphones",
        "category": "Electronics",
        "price": Decimal("299.00"),
        "original_price": Decimal("399.00"),
        "stock_quantity": 156,
        "is_featured": True,
        "short_description": "Wireless headphones with noise cancellation and 30-hour battery",
    },
    {
        "sku": "TS-2024-014",
        "name": "Organic Cotton T-Shirt",
        "category": "Clothing",
        "price": Decimal("24.50"),
        "stock_quantity": 18,
        "short_description": "Soft organic cotton crew neck",
    },
    {
        "sku": "BK-2024-102",
        "name": "Field Guide to Garden Birds",
        "category": "Books",
        "price": Decimal("19.99"),
        "stock_quantity": 0,
        "short_description": "Illustrated guide to common garden birds",
    },
]


def seed_default_categories(db: Session) -> int:
    """Insert the default top level categories that are missing. Returns how many were added."""
    existing = {name for (name,) in db.query(Category.name).all()}
    added = 0
    with transaction(db):
        for order, (name, description) in enumerate(DEFAULT_CATEGORIES, start=1):
            if name in existing:
                continue
            db.add(Category(name=name, slug=slugify(name), description=description, display_order=order))
            added += 1
    if added:
        logger.info(f"Seeded {added} default categories")
    return added


def seed_demo_products(db: Session) -> int:
    categories = {category.name: category.id for category in db.query(Category).all()}
    existing = {sku for (sku,) in db.query(Product.sku).all()}
    added = 0
    with transaction(db):
        for data in DEMO_PRODUCTS:
            if data["sku"] in existing or data["category"] not in categories:
                continue
            product = Product(
                sku=data["sku"],
                name=data["name"],
                slug=slugify(data["name"]),
                description=data["short_description"],
                short_description=data["short_description"],
                category_id=categories[data["category"]],
                price=data["price"],
                original_price=data.get("original_price"),
                stock_quantity=data["stock_quantity"],
                low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD,
                is_featured=data.get("is_featured", False),
            )
            product.stock_status = calculate_stock_status(product.stock_quantity, product.low_stock_threshold)
            db.add(product)
            added += 1
    logger.info(f"Seeded {added} demo products")
    return added


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    init_db()
    db = SessionLocal()
    try:
        seed_default_categories(db)
        seed_demo_products(db)
    finally:
        db.close()
