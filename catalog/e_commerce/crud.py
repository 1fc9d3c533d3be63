from sqlalchemy.orm import Session, joinedload, aliased
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func, or_
from typing import Optional, List, Dict, Any, Tuple
from decimal import Decimal
import logging

from ..core.database import transaction
from ..core.exceptions import NotFound, ValidationFailure
from ..core.helpers import sanitize_search, parse_pagination
from .models import Product, Category, Review, CartItems, WishlistItems
from .schemas import ProductFilters, ReviewCreate, CartItemCreate

logger = logging.getLogger(__name__)

PRODUCT_SORTS = {
    "name": Product.name,
    "price": Product.price,
    "date": Product.created_at,
    "stock": Product.stock_quantity,
    "rating": Product.rating_average,
}

REVIEW_SORTS = {
    "date": Review.created_at,
    "rating": Review.rating,
    "helpful": Review.helpful_count,
}


def _money(value) -> Optional[float]:
    if value is None:
        return None
    return float(value) if isinstance(value, Decimal) else value


def _ordered(column, order: str):
    return column.desc() if order == "desc" else column.asc()


def is_public(product: Optional[Product]) -> bool:
    """Only active products are visible on the storefront API."""
    return product is not None and product.status == "active" and bool(product.is_active)


# Product read model

def format_product(product: Product) -> Dict[str, Any]:
    """Full product document used by the detail endpoints."""
    category = product.category
    return {
        "id": product.id,
        "sku": product.sku,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "short_description": product.short_description,
        "category": {"id": category.id, "name": category.name, "slug": category.slug} if category else None,
        "price": {
            "amount": _money(product.price),
            "currency": product.currency,
            "original_amount": _money(product.original_price),
        },
        "stock": get_product_stock(product)["stock"],
        "images": product.images or [],
        "is_featured": bool(product.is_featured),
        "status": product.status,
        "rating": {"average": product.rating_average or 0, "count": product.rating_count or 0},
        "metadata": {
            "created_at": product.created_at,
            "updated_at": product.updated_at,
            "is_active": bool(product.is_active),
        },
    }


def format_product_summary(db: Session, product: Product) -> Dict[str, Any]:
    """Compact listing card: price, stock flag, category and rating."""
    category = db.get(Category, product.category_id) if product.category_id else None
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "sku": product.sku,
        "short_description": product.short_description,
        "price": {
            "amount": _money(product.price),
            "currency": product.currency,
            "original_amount": _money(product.original_price),
        },
        "stock": {
            "status": product.stock_status,
            "is_in_stock": product.stock_status == "in_stock",
        },
        "images": product.images or [],
        "category": {"id": category.id, "name": category.name, "slug": category.slug} if category else None,
        "rating": {"average": product.rating_average or 0, "count": product.rating_count or 0},
        "is_featured": bool(product.is_featured),
    }


def get_product_stock(product: Product) -> Dict[str, Any]:
    """Public stock view; no thresholds or ledger data."""
    return {
        "id": product.id,
        "name": product.name,
        "sku": product.sku,
        "stock": {
            "quantity": product.stock_quantity,
            "status": product.stock_status,
            "is_in_stock": product.stock_status == "in_stock",
            "is_low_stock": product.stock_status == "low_stock",
            "is_out_of_stock": product.stock_status == "out_of_stock",
        },
        "metadata": {"updated_at": product.updated_at},
    }


def _apply_search(query, search: Optional[str]):
    term = sanitize_search(search)
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.sku.ilike(pattern),
            Product.description.ilike(pattern),
        ))
    return query


def get_products(db: Session, filters: ProductFilters) -> Tuple[List[Product], int]:
    """
    Filtered, sorted and paginated product listing.

    Returns the page of products together with the total row count
    matching the filters.
    """
    page, limit, offset = parse_pagination(filters.page, filters.limit)

    query = db.query(Product).options(joinedload(Product.category))
    query = _apply_search(query, filters.search)
    if filters.category:
        query = query.filter(Product.category_id == filters.category)
    if filters.status:
        query = query.filter(Product.status == filters.status)
    if filters.min_price is not None:
        query = query.filter(Product.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.filter(Product.price <= filters.max_price)
    if filters.in_stock is not None:
        query = query.filter(Product.stock_status == ("in_stock" if filters.in_stock else "out_of_stock"))
    if filters.featured is not None:
        query = query.filter(Product.is_featured == filters.featured)

    total = query.count()
    sort_column = PRODUCT_SORTS.get(filters.sort, Product.name)
    products = (
        query.order_by(_ordered(sort_column, filters.order), Product.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return products, total


def get_product(db: Session, product_id: str) -> Optional[Product]:
    return db.query(Product).filter(Product.id == product_id).first()


def get_product_by_sku(db: Session, sku: str) -> Optional[Product]:
    return db.query(Product).filter(Product.sku == sku).first()


def get_product_by_slug(db: Session, slug: str) -> Optional[Product]:
    return db.query(Product).filter(Product.slug == slug).first()


def get_featured_products(db: Session, limit: int = 12, category: Optional[str] = None) -> List[Product]:
    query = db.query(Product).filter(
        Product.status == "active",
        Product.is_active == True,
        Product.is_featured == True
    )
    if category:
        query = query.filter(Product.category_id == category)
    return query.order_by(Product.name.asc()).limit(min(max(1, limit), 50)).all()


def get_related_products(db: Session, product: Product, limit: int = 8) -> List[Product]:
    """Other active products from the same category."""
    return (
        db.query(Product)
        .filter(
            Product.category_id == product.category_id,
            Product.id != product.id,
            Product.status == "active",
            Product.is_active == True
        )
        .order_by(Product.name.asc())
        .limit(min(max(1, limit), 20))
        .all()
    )


# Category read model

def _category_dict(category: Category, parent_name: str = None, parent_slug: str = None) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "image_url": category.image_url,
        "display_order": category.display_order,
        "is_active": bool(category.is_active),
        "parent": {"id": category.parent_id, "name": parent_name, "slug": parent_slug} if category.parent_id else None,
    }


def get_categories(db: Session) -> List[Dict[str, Any]]:
    """Flat list of every category with its parent's name and slug."""
    parent = aliased(Category)
    rows = (
        db.query(Category, parent.name, parent.slug)
        .outerjoin(parent, Category.parent_id == parent.id)
        .order_by(Category.display_order.asc(), Category.name.asc())
        .all()
    )
    return [_category_dict(category, parent_name, parent_slug) for category, parent_name, parent_slug in rows]


def _direct_counts(db: Session) -> Dict[str, int]:
    rows = (
        db.query(Product.category_id, func.count(Product.id))
        .filter(Product.status == "active")
        .group_by(Product.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


def get_categories_with_counts(db: Session, include_empty: bool = False) -> List[Dict[str, Any]]:
    """Categories with the number of active products filed directly under each."""
    counts = _direct_counts(db)
    categories = []
    for category in get_categories(db):
        category["product_count"] = counts.get(category["id"], 0)
        if include_empty or category["product_count"] > 0:
            categories.append(category)
    return categories


def get_category_tree(db: Session, include_empty: bool = False, include_inactive: bool = False) -> List[Dict[str, Any]]:
    """
    Nested category tree built from parent pointers.

    ``product_count`` is the category's own active products and
    ``total_product_count`` adds every descendant. A node counts as empty
    only when its whole subtree is empty. Inactive categories are dropped
    together with their subtree unless ``include_inactive`` is set.
    """
    counts = _direct_counts(db)
    nodes = {}
    for category in get_categories(db):
        category["product_count"] = counts.get(category["id"], 0)
        category["children"] = []
        nodes[category["id"]] = category

    roots = []
    for node in nodes.values():
        parent_id = node["parent"]["id"] if node["parent"] else None
        if parent_id and parent_id in nodes and parent_id != node["id"]:
            nodes[parent_id]["children"].append(node)
        else:
            roots.append(node)

    def prune(branch: List[Dict[str, Any]], seen: set) -> List[Dict[str, Any]]:
        kept = []
        for node in branch:
            if node["id"] in seen:
                continue
            seen.add(node["id"])
            if not include_inactive and not node["is_active"]:
                continue
            node["children"] = prune(node["children"], seen)
            node["total_product_count"] = node["product_count"] + sum(
                child["total_product_count"] for child in node["children"]
            )
            if include_empty or node["total_product_count"] > 0:
                kept.append(node)
        return kept

    return prune(roots, set())


def get_descendant_category_ids(db: Session, category_id: str) -> List[str]:
    """The category itself followed by all of its descendants."""
    children_of: Dict[str, List[str]] = {}
    for child_id, parent_id in db.query(Category.id, Category.parent_id).filter(Category.parent_id != None).all():
        children_of.setdefault(parent_id, []).append(child_id)

    ids = [category_id]
    seen = {category_id}
    index = 0
    while index < len(ids):
        for child_id in children_of.get(ids[index], []):
            if child_id not in seen:
                seen.add(child_id)
                ids.append(child_id)
        index += 1
    return ids


def get_category(db: Session, category_id: str) -> Optional[Dict[str, Any]]:
    """Category with its active children and a product count covering all descendants."""
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        return None

    parent = category.parent
    result = _category_dict(category, parent.name if parent else None, parent.slug if parent else None)

    counts = _direct_counts(db)
    children = (
        db.query(Category)
        .filter(Category.parent_id == category_id, Category.is_active == True)
        .order_by(Category.display_order.asc(), Category.name.asc())
        .all()
    )
    result["children"] = [
        {
            "id": child.id,
            "name": child.name,
            "slug": child.slug,
            "description": child.description,
            "display_order": child.display_order,
            "product_count": sum(counts.get(cid, 0) for cid in get_descendant_category_ids(db, child.id)),
        }
        for child in children
    ]
    result["product_count"] = sum(counts.get(cid, 0) for cid in get_descendant_category_ids(db, category_id))
    return result


def get_category_by_slug(db: Session, slug: str) -> Optional[Dict[str, Any]]:
    category = db.query(Category.id).filter(Category.slug == slug).first()
    if not category:
        return None
    return get_category(db, category.id)


def get_breadcrumbs(db: Session, category_id: str) -> List[Dict[str, Any]]:
    """Path from the root category down to ``category_id``."""
    breadcrumbs = []
    seen = set()
    current_id = category_id
    while current_id and current_id not in seen:
        seen.add(current_id)
        category = db.query(Category).filter(Category.id == current_id).first()
        if not category:
            break
        breadcrumbs.insert(0, {"id": category.id, "name": category.name, "slug": category.slug})
        current_id = category.parent_id
    return breadcrumbs


def get_category_products(
    db: Session,
    category_id: str,
    include_subcategories: bool = True,
    page: int = 1,
    limit: int = 25,
    search: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> Tuple[List[Product], int]:
    """Active products of a category, optionally including every descendant category."""
    page, limit, offset = parse_pagination(page, limit)
    category_ids = get_descendant_category_ids(db, category_id) if include_subcategories else [category_id]

    query = db.query(Product).filter(
        Product.category_id.in_(category_ids),
        Product.status == "active"
    )
    query = _apply_search(query, search)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    total = query.count()
    sort_column = PRODUCT_SORTS.get(sort, Product.name)
    products = (
        query.order_by(_ordered(sort_column, order), Product.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return products, total


# Reviews

def get_reviews(
    db: Session,
    product_id: str,
    page: int = 1,
    limit: int = 10,
    sort: str = "date",
    order: str = "desc"
) -> Tuple[List[Review], int]:
    page, limit, offset = parse_pagination(page, limit, default_limit=10)
    query = db.query(Review).filter(Review.product_id == product_id)
    total = query.count()
    sort_column = REVIEW_SORTS.get(sort, Review.created_at)
    reviews = (
        query.order_by(_ordered(sort_column, order), Review.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return reviews, total


def update_product_rating(db: Session, product_id: str) -> None:
    average, count = db.query(func.avg(Review.rating), func.count(Review.id)).filter(
        Review.product_id == product_id
    ).one()
    db.query(Product).filter(Product.id == product_id).update(
        {Product.rating_average: round(float(average or 0), 2), Product.rating_count: count or 0},
        synchronize_session=False
    )


def create_review(db: Session, product_id: str, review: ReviewCreate) -> Review:
    """
    Store a review and refresh the product's rating average and count.

    Raises:
        NotFound: unknown product
        ValidationFailure: the product is not active
    """
    product = get_product(db, product_id)
    if not product:
        raise NotFound("Product", {"product_id": product_id})
    if not is_public(product):
        raise ValidationFailure("Cannot review inactive products")

    with transaction(db):
        db_review = Review(
            product_id=product_id,
            author_name=review.author_name,
            rating=review.rating,
            title=review.title,
            content=review.content,
        )
        db.add(db_review)
        db.flush()
        update_product_rating(db, product_id)

    db.refresh(db_review)
    logger.info(f"Review {db_review.id} added to product {product_id} (rating {review.rating})")
    return db_review


# Cart (keyed by session id)

def get_cart(db: Session, session_id: str) -> Dict[str, Any]:
    items = (
        db.query(CartItems)
        .options(joinedload(CartItems.product))
        .filter(CartItems.session_id == session_id)
        .order_by(CartItems.created_at.asc(), CartItems.id.asc())
        .all()
    )
    lines = []
    subtotal = Decimal("0")
    for item in items:
        price = item.product.price if item.product and item.product.price is not None else Decimal("0")
        line_total = Decimal(str(price)) * item.quantity
        subtotal += line_total
        lines.append({
            "id": item.id,
            "product_id": item.product_id,
            "quantity": item.quantity,
            "selected_variants": item.selected_variants,
            "added_at": item.created_at,
            "product": format_product_summary(db, item.product) if item.product else None,
            "line_total": float(line_total),
        })
    return {
        "id": f"cart_{session_id}",
        "items": lines,
        "subtotal": float(subtotal),
        "total": float(subtotal),
        "item_count": sum(item.quantity for item in items),
    }


def add_to_cart(db: Session, session_id: str, item: CartItemCreate) -> Dict[str, Any]:
    """Add a product line, merging quantities when the product is already in the cart."""
    product = get_product(db, item.product_id)
    if not is_public(product):
        raise NotFound("Product", {"product_id": item.product_id})

    with transaction(db):
        existing = db.query(CartItems).filter(
            CartItems.session_id == session_id,
            CartItems.product_id == item.product_id
        ).first()
        if existing:
            existing.quantity = existing.quantity + item.quantity
            if item.variants is not None:
                existing.selected_variants = item.variants
        else:
            db.add(CartItems(
                session_id=session_id,
                product_id=item.product_id,
                quantity=item.quantity,
                selected_variants=item.variants,
            ))
    return get_cart(db, session_id)


def _get_cart_item(db: Session, session_id: str, item_id: str) -> CartItems:
    cart_item = db.query(CartItems).filter(
        CartItems.id == item_id,
        CartItems.session_id == session_id
    ).first()
    if not cart_item:
        raise NotFound("Cart item", {"item_id": item_id})
    return cart_item


def update_cart_item(db: Session, session_id: str, item_id: str, quantity: int) -> Dict[str, Any]:
    """Set a line's quantity; zero or less removes the line."""
    if quantity <= 0:
        return remove_cart_item(db, session_id, item_id)
    with transaction(db):
        cart_item = _get_cart_item(db, session_id, item_id)
        cart_item.quantity = quantity
    return get_cart(db, session_id)


def remove_cart_item(db: Session, session_id: str, item_id: str) -> Dict[str, Any]:
    with transaction(db):
        db.delete(_get_cart_item(db, session_id, item_id))
    return get_cart(db, session_id)


def clear_cart(db: Session, session_id: str) -> Dict[str, Any]:
    with transaction(db):
        removed = db.query(CartItems).filter(CartItems.session_id == session_id).delete(synchronize_session=False)
    logger.info(f"Cleared {removed} item(s) from cart of session {session_id}")
    return get_cart(db, session_id)


# Wishlist (keyed by session id)

def get_wishlist(db: Session, session_id: str) -> List[Dict[str, Any]]:
    items = (
        db.query(WishlistItems)
        .options(joinedload(WishlistItems.product))
        .filter(WishlistItems.session_id == session_id)
        .order_by(WishlistItems.created_at.desc(), WishlistItems.id.asc())
        .all()
    )
    return [
        {
            "id": item.id,
            "product_id": item.product_id,
            "added_at": item.created_at,
            "product": format_product_summary(db, item.product) if item.product else None,
        }
        for item in items
    ]


def is_in_wishlist(db: Session, session_id: str, product_id: str) -> bool:
    return db.query(WishlistItems.id).filter(
        WishlistItems.session_id == session_id,
        WishlistItems.product_id == product_id
    ).first() is not None


def add_to_wishlist(db: Session, session_id: str, product_id: str) -> bool:
    """Returns False when the product is already on the wishlist."""
    if not get_product(db, product_id):
        raise NotFound("Product", {"product_id": product_id})
    if is_in_wishlist(db, session_id, product_id):
        return False
    try:
        with transaction(db):
            db.add(WishlistItems(session_id=session_id, product_id=product_id))
    except IntegrityError:
        # Another request added the same product in between
        return False
    return True


def remove_from_wishlist(db: Session, session_id: str, product_id: str) -> bool:
    with transaction(db):
        removed = db.query(WishlistItems).filter(
            WishlistItems.session_id == session_id,
            WishlistItems.product_id == product_id
        ).delete(synchronize_session=False)
    return removed > 0
