from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..core.database import get_db
from ..core.exceptions import NotFound, ValidationFailure
from ..core.responses import success, created, pagination_block
from ..core.session import get_session_id
from . import crud
from .schemas import (
    ProductFilters, ProductSort, ReviewSort, SortOrder,
    ReviewCreate, ReviewResponse, CartItemCreate, CartItemUpdate, WishlistItemCreate
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Catalog"])


def _public_product(db: Session, product_id: str):
    product = crud.get_product(db, product_id)
    if not crud.is_public(product):
        raise NotFound("Product", {"product_id": product_id})
    return product


def _active_category(db: Session, category_id: str):
    category = crud.get_category(db, category_id)
    if not category or not category["is_active"]:
        raise NotFound("Category", {"category_id": category_id})
    return category


def _category_products_response(
    db: Session, category, include_subcategories, page, limit, search, sort, order, min_price, max_price
):
    products, total = crud.get_category_products(
        db, category["id"], include_subcategories, page, limit, search, sort, order, min_price, max_price
    )
    return success({
        "category": {"id": category["id"], "name": category["name"], "slug": category["slug"]},
        "products": [crud.format_product_summary(db, p) for p in products],
        "pagination": pagination_block(page, limit, total),
    })


# Products

@router.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: str = "active",
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    featured: Optional[bool] = None,
    sort: ProductSort = "name",
    order: SortOrder = "asc",
    db: Session = Depends(get_db)
):
    filters = ProductFilters(
        page=page, limit=limit, search=search, category=category, status=status,
        min_price=min_price, max_price=max_price, in_stock=in_stock, featured=featured,
        sort=sort, order=order
    )
    products, total = crud.get_products(db, filters)
    return success({
        "products": [crud.format_product_summary(db, p) for p in products],
        "pagination": pagination_block(page, limit, total),
        "filters": filters.model_dump(exclude={"page", "limit"}),
    })


@router.get("/products/search")
def search_products(
    q: str = Query(..., min_length=1),
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    sort: ProductSort = "name",
    order: SortOrder = "asc",
    db: Session = Depends(get_db)
):
    if not q.strip():
        raise ValidationFailure("Search query is required")
    filters = ProductFilters(
        page=page, limit=limit, search=q, category=category, status="active",
        min_price=min_price, max_price=max_price, in_stock=in_stock, sort=sort, order=order
    )
    products, total = crud.get_products(db, filters)
    return success({
        "query": q,
        "products": [crud.format_product_summary(db, p) for p in products],
        "pagination": pagination_block(page, limit, total),
    })


@router.get("/products/featured")
def featured_products(
    limit: int = Query(12, ge=1, le=50),
    category: Optional[str] = None,
    db: Session = Depends(get_db)
):
    products = crud.get_featured_products(db, limit, category)
    return success({
        "products": [crud.format_product_summary(db, p) for p in products],
        "count": len(products),
        "category": category,
    })


@router.get("/products/sku/{sku}")
def product_by_sku(sku: str, db: Session = Depends(get_db)):
    product = crud.get_product_by_sku(db, sku)
    if not crud.is_public(product):
        raise NotFound("Product", {"sku": sku})
    return success(crud.format_product(product))


@router.get("/products/slug/{slug}")
def product_by_slug(slug: str, db: Session = Depends(get_db)):
    product = crud.get_product_by_slug(db, slug)
    if not crud.is_public(product):
        raise NotFound("Product", {"slug": slug})
    return success(crud.format_product(product))


@router.get("/products/category/{category_id}")
def products_by_category(
    category_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    sort: ProductSort = "name",
    order: SortOrder = "asc",
    include_subcategories: bool = Query(True, alias="includeSubcategories"),
    db: Session = Depends(get_db)
):
    category = _active_category(db, category_id)
    return _category_products_response(
        db, category, include_subcategories, page, limit, None, sort, order, None, None
    )


@router.get("/products/{product_id}")
def product_detail(product_id: str, db: Session = Depends(get_db)):
    product = _public_product(db, product_id)
    return success({"product": crud.format_product(product)})


@router.get("/products/{product_id}/inventory")
def product_stock(product_id: str, db: Session = Depends(get_db)):
    product = _public_product(db, product_id)
    return success(crud.get_product_stock(product))


@router.get("/products/{product_id}/related")
def related_products(
    product_id: str,
    limit: int = Query(8, ge=1, le=20),
    db: Session = Depends(get_db)
):
    product = _public_product(db, product_id)
    products = crud.get_related_products(db, product, limit)
    return success({
        "products": [crud.format_product_summary(db, p) for p in products],
        "count": len(products),
    })


@router.get("/products/{product_id}/reviews")
def product_reviews(
    product_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: ReviewSort = "date",
    order: SortOrder = "desc",
    db: Session = Depends(get_db)
):
    _public_product(db, product_id)
    reviews, total = crud.get_reviews(db, product_id, page, limit, sort, order)
    return success({
        "reviews": [ReviewResponse.model_validate(review).model_dump() for review in reviews],
        "pagination": pagination_block(page, limit, total),
    })


@router.post("/products/{product_id}/reviews")
def create_review(product_id: str, review: ReviewCreate, db: Session = Depends(get_db)):
    db_review = crud.create_review(db, product_id, review)
    return created(ReviewResponse.model_validate(db_review).model_dump(), "Review created successfully")


# Categories

@router.get("/categories")
def list_categories(
    include_empty: bool = Query(False, alias="includeEmpty"),
    db: Session = Depends(get_db)
):
    categories = [
        category for category in crud.get_categories_with_counts(db, include_empty)
        if category["is_active"]
    ]
    return success({"categories": categories})


@router.get("/categories/tree")
def category_tree(
    include_empty: bool = Query(False, alias="includeEmpty"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db)
):
    return success({"categories": crud.get_category_tree(db, include_empty, include_inactive)})


@router.get("/categories/slug/{slug}")
def category_by_slug(slug: str, db: Session = Depends(get_db)):
    category = crud.get_category_by_slug(db, slug)
    if not category or not category["is_active"]:
        raise NotFound("Category", {"slug": slug})
    return success(category)


@router.get("/categories/{category_id}")
def category_detail(category_id: str, db: Session = Depends(get_db)):
    return success(_active_category(db, category_id))


@router.get("/categories/{category_id}/breadcrumbs")
def category_breadcrumbs(category_id: str, db: Session = Depends(get_db)):
    _active_category(db, category_id)
    return success({"breadcrumbs": crud.get_breadcrumbs(db, category_id)})


@router.get("/categories/{category_id}/products")
def category_products(
    category_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    search: Optional[str] = None,
    sort: ProductSort = "name",
    order: SortOrder = "asc",
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    include_subcategories: bool = Query(True, alias="includeSubcategories"),
    db: Session = Depends(get_db)
):
    category = _active_category(db, category_id)
    return _category_products_response(
        db, category, include_subcategories, page, limit, search, sort, order, min_price, max_price
    )


# Cart

@router.get("/cart")
def get_cart(session_id: str = Depends(get_session_id), db: Session = Depends(get_db)):
    return success({"cart": crud.get_cart(db, session_id)})


@router.post("/cart/items")
def add_cart_item(
    item: CartItemCreate,
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db)
):
    return success({"cart": crud.add_to_cart(db, session_id, item)}, "Product added to cart")


@router.put("/cart/items/{item_id}")
def update_cart_item(
    item_id: str,
    payload: CartItemUpdate,
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db)
):
    return success({"cart": crud.update_cart_item(db, session_id, item_id, payload.quantity)}, "Cart updated")


@router.delete("/cart/items/{item_id}")
def remove_cart_item(item_id: str, session_id: str = Depends(get_session_id), db: Session = Depends(get_db)):
    return success({"cart": crud.remove_cart_item(db, session_id, item_id)}, "Item removed from cart")


@router.delete("/cart")
def clear_cart(session_id: str = Depends(get_session_id), db: Session = Depends(get_db)):
    return success({"cart": crud.clear_cart(db, session_id)}, "Cart cleared")


# Wishlist

@router.get("/wishlist")
def get_wishlist(session_id: str = Depends(get_session_id), db: Session = Depends(get_db)):
    items = crud.get_wishlist(db, session_id)
    return success({"items": items, "count": len(items)})


@router.post("/wishlist/items")
def add_wishlist_item(
    payload: WishlistItemCreate,
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db)
):
    added = crud.add_to_wishlist(db, session_id, payload.product_id)
    message = "Product added to wishlist" if added else "Product already in wishlist"
    return success({"added": added, "product_id": payload.product_id}, message)


@router.get("/wishlist/items/{product_id}")
def wishlist_contains(product_id: str, session_id: str = Depends(get_session_id), db: Session = Depends(get_db)):
    return success({"product_id": product_id, "in_wishlist": crud.is_in_wishlist(db, session_id, product_id)})


@router.delete("/wishlist/items/{product_id}")
def remove_wishlist_item(product_id: str, session_id: str = Depends(get_session_id), db: Session = Depends(get_db)):
    removed = crud.remove_from_wishlist(db, session_id, product_id)
    message = "Product removed from wishlist" if removed else "Product not in wishlist"
    return success({"removed": removed, "product_id": product_id}, message)
