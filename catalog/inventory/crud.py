from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
import logging

from sqlalchemy import and_, case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import ADMIN_ACTOR, RECENT_ADJUSTMENTS_LIMIT, RECENT_ACTIVITY_DAYS, MAX_PAGE_SIZE
from ..core.database import transaction
from ..core.exceptions import CatalogError, NotFound, InvalidAdjustmentType
from ..core.helpers import utcnow
from ..core.responses import pagination_block
from ..e_commerce.models import Product, Category
from .models import InventoryAdjustment, LowStockAlert, AdjustmentType, AlertType, ADJUSTMENT_TYPES, INBOUND_TYPES
from .schemas import AdjustmentRequest, BulkAdjustmentResult, parse_adjustment
from .stock import calculate_stock_status, compute_new_quantity

logger = logging.getLogger(__name__)


def _type_value(adjustment_type: Union[str, AdjustmentType, None]) -> Optional[str]:
    if adjustment_type is None:
        return None
    value = adjustment_type.value if isinstance(adjustment_type, AdjustmentType) else adjustment_type
    if value not in ADJUSTMENT_TYPES:
        raise InvalidAdjustmentType(value)
    return value


def _adjustment_to_dict(adjustment: InventoryAdjustment, product_name: str = None, product_sku: str = None) -> Dict[str, Any]:
    return {
        "id": adjustment.id,
        "product_id": adjustment.product_id,
        "product_name": product_name,
        "product_sku": product_sku,
        "adjustment_type": adjustment.adjustment_type,
        "quantity": adjustment.quantity,
        "reason": adjustment.reason,
        "notes": adjustment.notes,
        "created_by": adjustment.created_by,
        "created_at": adjustment.created_at,
    }


def _alert_to_dict(alert: LowStockAlert, product_name: str = None, product_sku: str = None) -> Dict[str, Any]:
    return {
        "id": alert.id,
        "product_id": alert.product_id,
        "product_name": product_name,
        "product_sku": product_sku,
        "alert_type": alert.alert_type,
        "current_quantity": alert.current_quantity,
        "threshold": alert.threshold,
        "is_resolved": bool(alert.is_resolved),
        "resolved_at": alert.resolved_at,
        "created_at": alert.created_at,
    }


def _stock_row(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "sku": product.sku,
        "stock_quantity": product.stock_quantity,
        "low_stock_threshold": product.low_stock_threshold,
        "reorder_level": product.reorder_level,
        "stock_status": product.stock_status,
    }


def _lock_product(db: Session, product_id: str) -> Product:
    """
    Take the product row's write lock, then read it fresh.

    Touching the row first makes SQLite acquire its writer lock (and
    Postgres its row lock) before the quantity is read, so two adjustments
    on the same product serialize instead of both reading the old value.
    """
    touched = (
        db.query(Product)
        .filter(Product.id == product_id)
        .update({Product.updated_at: utcnow()}, synchronize_session=False)
    )
    if not touched:
        raise NotFound("Product", {"product_id": product_id})
    return (
        db.query(Product)
        .filter(Product.id == product_id)
        .populate_existing()
        .with_for_update()
        .one()
    )


# Ledger writes

def create_adjustment(db: Session, request: AdjustmentRequest) -> str:
    """
    Apply one inventory adjustment and record it in the ledger.

    The product update, the ledger row and any alerts are written in a
    single transaction: when any step fails nothing is persisted.

    Args:
        db: database session
        request: typed adjustment (StockIncrease, StockDecrease, StockSet or StockTransfer)

    Returns:
        str: id of the new ledger entry

    Raises:
        NotFound: the product does not exist
        InsufficientStock: the adjustment would take stock below zero
    """
    adjustment_type = _type_value(request.type)

    with transaction(db):
        product = _lock_product(db, request.product_id)
        old_quantity = product.stock_quantity
        new_quantity = compute_new_quantity(old_quantity, adjustment_type, request.quantity, product.id)

        product.stock_quantity = new_quantity
        product.stock_status = calculate_stock_status(new_quantity, product.low_stock_threshold)

        adjustment = InventoryAdjustment(
            product_id=product.id,
            adjustment_type=adjustment_type,
            quantity=request.quantity,
            reason=request.reason,
            notes=request.notes,
            created_by=request.created_by or ADMIN_ACTOR,
        )
        db.add(adjustment)
        db.flush()

        alerts = check_low_stock_alert(db, product.id, new_quantity)
        adjustment_id = adjustment.id

    logger.info(
        f"Inventory {adjustment_type} on product {request.product_id}: "
        f"{old_quantity} -> {new_quantity} (adjustment {adjustment_id}, {len(alerts)} alert(s) raised)"
    )
    return adjustment_id


def bulk_adjustments(db: Session, entries: Iterable[Mapping[str, Any]]) -> List[BulkAdjustmentResult]:
    """
    Apply each entry independently, each in its own transaction.

    A failing entry is reported in the result list and does not stop or
    undo the entries around it.
    """
    results = []
    for entry in entries:
        product_id = None
        if isinstance(entry, Mapping):
            product_id = entry.get("productId") or entry.get("product_id")
        try:
            request = parse_adjustment(entry)
            adjustment_id = create_adjustment(db, request)
        except CatalogError as e:
            logger.warning(f"Bulk adjustment for product {product_id} rejected: {e.message}")
            results.append(BulkAdjustmentResult(
                product_id=product_id, success=False, error=e.message, error_code=e.code
            ))
        except SQLAlchemyError as e:
            logger.error(f"Bulk adjustment for product {product_id} failed: {str(e)}")
            results.append(BulkAdjustmentResult(
                product_id=product_id, success=False, error="Database operation failed", error_code="DATABASE_ERROR"
            ))
        else:
            results.append(BulkAdjustmentResult(
                product_id=product_id, success=True, adjustment_id=adjustment_id
            ))
    return results


def check_low_stock_alert(db: Session, product_id: str, new_quantity: int) -> List[LowStockAlert]:
    """
    Raise low_stock / reorder alerts for a product at ``new_quantity``.

    An alert is only created when no unresolved alert of the same type is
    open for the product. Alerts are never closed here, even when stock has
    recovered; closing them is an explicit resolve_alert call.
    """
    product = db.get(Product, product_id)
    if product is None:
        return []

    created = []
    checks = (
        (AlertType.low_stock, product.low_stock_threshold),
        (AlertType.reorder, product.reorder_level),
    )
    for alert_type, threshold in checks:
        if new_quantity > threshold:
            continue
        open_alert = db.query(LowStockAlert.id).filter(
            LowStockAlert.product_id == product_id,
            LowStockAlert.alert_type == alert_type.value,
            LowStockAlert.is_resolved == False
        ).first()
        if open_alert:
            continue
        alert = LowStockAlert(
            product_id=product_id,
            alert_type=alert_type.value,
            current_quantity=new_quantity,
            threshold=threshold,
        )
        db.add(alert)
        created.append(alert)

    if created:
        db.flush()
        for alert in created:
            logger.info(f"Raised {alert.alert_type} alert {alert.id} for product {product_id} at quantity {new_quantity}")
    return created


def resolve_alert(db: Session, alert_id: str) -> bool:
    """
    Close an open alert.

    Returns False when the id is unknown or the alert was already resolved;
    in that case nothing (including resolved_at) changes.
    """
    with transaction(db):
        changed = db.query(LowStockAlert).filter(
            LowStockAlert.id == alert_id,
            LowStockAlert.is_resolved == False
        ).update(
            {LowStockAlert.is_resolved: True, LowStockAlert.resolved_at: utcnow()},
            synchronize_session=False
        )
    if changed:
        logger.info(f"Alert {alert_id} resolved")
    return changed > 0


def sync_stock_status(db: Session, product_id: Optional[str] = None) -> int:
    """
    Re-derive stock_status from quantity and threshold.

    Returns the number of products whose stored status was wrong.
    """
    with transaction(db):
        query = db.query(Product)
        if product_id:
            query = query.filter(Product.id == product_id)
            if query.first() is None:
                raise NotFound("Product", {"product_id": product_id})
        corrected = 0
        for product in query.all():
            expected = calculate_stock_status(product.stock_quantity, product.low_stock_threshold)
            if product.stock_status != expected:
                logger.warning(f"Product {product.id} status {product.stock_status} corrected to {expected}")
                product.stock_status = expected
                corrected += 1
    return corrected


# Read side

def get_product_inventory(db: Session, product_id: str) -> Optional[Dict[str, Any]]:
    """Current stock, most recent ledger entries and open alerts for one product."""
    product = db.query(Product).filter(Product.id == product_id).populate_existing().first()
    if not product:
        return None

    adjustments = (
        db.query(InventoryAdjustment)
        .filter(InventoryAdjustment.product_id == product_id)
        .order_by(InventoryAdjustment.created_at.desc())
        .limit(RECENT_ADJUSTMENTS_LIMIT)
        .all()
    )
    alerts = (
        db.query(LowStockAlert)
        .filter(LowStockAlert.product_id == product_id, LowStockAlert.is_resolved == False)
        .order_by(LowStockAlert.created_at.desc())
        .all()
    )

    return {
        "product": {"id": product.id, "name": product.name, "sku": product.sku},
        "stock": {
            "quantity": product.stock_quantity,
            "status": product.stock_status,
            "low_stock_threshold": product.low_stock_threshold,
            "reorder_level": product.reorder_level,
            "needs_reorder": product.stock_quantity <= product.reorder_level,
        },
        "recent_adjustments": [_adjustment_to_dict(adj) for adj in adjustments],
        "active_alerts": [_alert_to_dict(alert) for alert in alerts],
    }


def get_adjustments(
    db: Session,
    page: int = 1,
    limit: int = 25,
    product_id: Optional[str] = None,
    adjustment_type: Union[str, AdjustmentType, None] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    max_limit: int = MAX_PAGE_SIZE,
) -> Dict[str, Any]:
    """Ledger entries, newest first, filtered and paginated."""
    page = max(1, page or 1)
    limit = min(max_limit, max(1, limit or 25))
    type_value = _type_value(adjustment_type)

    query = db.query(InventoryAdjustment, Product.name, Product.sku).outerjoin(
        Product, InventoryAdjustment.product_id == Product.id
    )
    if product_id:
        query = query.filter(InventoryAdjustment.product_id == product_id)
    if type_value:
        query = query.filter(InventoryAdjustment.adjustment_type == type_value)
    if start_date:
        query = query.filter(InventoryAdjustment.created_at >= start_date)
    if end_date:
        query = query.filter(InventoryAdjustment.created_at <= end_date)

    total = query.count()
    rows = (
        query.order_by(InventoryAdjustment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "adjustments": [_adjustment_to_dict(adj, name, sku) for adj, name, sku in rows],
        "pagination": pagination_block(page, limit, total),
    }


def get_low_stock_products(db: Session, threshold: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Active products at or under their own low stock threshold, or under
    ``threshold`` when the caller supplies one.
    """
    limit_column = Product.low_stock_threshold if threshold is None else threshold
    products = (
        db.query(Product)
        .filter(Product.status == "active", Product.stock_quantity <= limit_column)
        .order_by(Product.stock_quantity.asc())
        .all()
    )
    return [_stock_row(product) for product in products]


def get_reorder_products(db: Session) -> List[Dict[str, Any]]:
    products = (
        db.query(Product)
        .filter(Product.status == "active", Product.stock_quantity <= Product.reorder_level)
        .order_by(Product.stock_quantity.asc())
        .all()
    )
    return [_stock_row(product) for product in products]


def get_inventory_stats(db: Session) -> Dict[str, Any]:
    totals = db.query(
        func.count(Product.id),
        func.coalesce(func.sum(Product.stock_quantity), 0),
        func.coalesce(func.sum(case((Product.stock_status == "low_stock", 1), else_=0)), 0),
        func.coalesce(func.sum(case((Product.stock_status == "out_of_stock", 1), else_=0)), 0),
        func.coalesce(func.sum(case((Product.stock_quantity <= Product.reorder_level, 1), else_=0)), 0),
        func.coalesce(func.sum(Product.price * Product.stock_quantity), 0),
    ).filter(Product.status == "active").one()

    since = utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    activity_rows = (
        db.query(
            InventoryAdjustment.adjustment_type,
            func.count(InventoryAdjustment.id),
            func.sum(InventoryAdjustment.quantity),
        )
        .filter(InventoryAdjustment.created_at >= since)
        .group_by(InventoryAdjustment.adjustment_type)
        .all()
    )

    total_products, total_stock, low_stock, out_of_stock, reorder, total_value = totals
    return {
        "total_products": int(total_products),
        "total_stock": int(total_stock),
        "low_stock_products": int(low_stock),
        "out_of_stock_products": int(out_of_stock),
        "reorder_products": int(reorder),
        "total_inventory_value": round(float(total_value), 2),
        "recent_activity": {
            adjustment_type: {"count": count, "total_quantity": int(quantity or 0)}
            for adjustment_type, count, quantity in activity_rows
        },
    }


def get_inventory_value_by_category(db: Session) -> List[Dict[str, Any]]:
    total_value = func.coalesce(func.sum(Product.price * Product.stock_quantity), 0)
    rows = (
        db.query(
            Category.id,
            Category.name,
            func.count(Product.id),
            func.coalesce(func.sum(Product.stock_quantity), 0),
            total_value,
        )
        .outerjoin(Product, and_(Product.category_id == Category.id, Product.status == "active"))
        .group_by(Category.id, Category.name)
        .order_by(total_value.desc(), Category.name.asc())
        .all()
    )
    return [
        {
            "category_id": category_id,
            "category_name": name,
            "product_count": int(product_count),
            "total_quantity": int(quantity),
            "total_value": round(float(value), 2),
        }
        for category_id, name, product_count, quantity, value in rows
    ]


def get_alerts(db: Session, alert_type: Union[str, AlertType, None] = None, resolved: bool = False) -> List[Dict[str, Any]]:
    query = db.query(LowStockAlert, Product.name, Product.sku).outerjoin(
        Product, LowStockAlert.product_id == Product.id
    ).filter(LowStockAlert.is_resolved == resolved)
    if alert_type:
        value = alert_type.value if isinstance(alert_type, AlertType) else alert_type
        query = query.filter(LowStockAlert.alert_type == value)
    rows = query.order_by(LowStockAlert.created_at.desc()).all()
    return [_alert_to_dict(alert, name, sku) for alert, name, sku in rows]


def get_active_alerts(db: Session) -> List[Dict[str, Any]]:
    return get_alerts(db, resolved=False)


def get_alert(db: Session, alert_id: str) -> Optional[Dict[str, Any]]:
    row = db.query(LowStockAlert, Product.name, Product.sku).outerjoin(
        Product, LowStockAlert.product_id == Product.id
    ).filter(LowStockAlert.id == alert_id).first()
    if not row:
        return None
    alert, name, sku = row
    return _alert_to_dict(alert, name, sku)


def get_inventory_movement(
    db: Session,
    group_by: str = "date",
    product_id: Optional[str] = None,
    adjustment_type: Union[str, AdjustmentType, None] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Ledger movement grouped by day, adjustment type or product.

    purchase and return count towards ``total_in``; every other kind
    counts towards ``total_out``.
    """
    adjustments = get_adjustments(
        db,
        page=1,
        limit=10000,
        product_id=product_id,
        adjustment_type=adjustment_type,
        start_date=start_date,
        end_date=end_date,
        max_limit=10000,
    )["adjustments"]

    groups: Dict[str, Dict[str, Any]] = {}
    for adj in adjustments:
        if group_by == "type":
            key = adj["adjustment_type"]
            group = groups.setdefault(key, {"type": key, "count": 0, "total_quantity": 0, "adjustments": []})
            group["total_quantity"] += adj["quantity"]
        else:
            if group_by == "product":
                key = adj["product_id"]
                group = groups.setdefault(key, {
                    "product_id": key,
                    "product_name": adj["product_name"],
                    "product_sku": adj["product_sku"],
                    "count": 0, "total_in": 0, "total_out": 0, "adjustments": [],
                })
            else:
                key = adj["created_at"].date().isoformat()
                group = groups.setdefault(key, {"date": key, "count": 0, "total_in": 0, "total_out": 0, "adjustments": []})
            if adj["adjustment_type"] in INBOUND_TYPES:
                group["total_in"] += adj["quantity"]
            else:
                group["total_out"] += abs(adj["quantity"])
        group["count"] += 1
        group["adjustments"].append(adj)

    return {
        "period": {"start_date": start_date, "end_date": end_date},
        "group_by": group_by,
        "summary": {"total_adjustments": len(adjustments), "total_groups": len(groups)},
        "data": list(groups.values()),
    }
