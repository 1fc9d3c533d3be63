from datetime import datetime
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Body, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.exceptions import NotFound
from ..core.responses import success, created
from . import crud
from .export import export_inventory
from .models import AdjustmentType, AlertType
from .schemas import BulkAdjustmentRequest, ResolveAlertRequest, SyncRequest, parse_adjustment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/inventory", tags=["Inventory"])


@router.get("/stats")
def inventory_stats(db: Session = Depends(get_db)):
    stats = crud.get_inventory_stats(db)
    stats["value_by_category"] = crud.get_inventory_value_by_category(db)
    return success(stats)


@router.get("/value-by-category")
def inventory_value_by_category(db: Session = Depends(get_db)):
    return success(crud.get_inventory_value_by_category(db))


@router.get("/low-stock")
def low_stock_products(
    threshold: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db)
):
    products = crud.get_low_stock_products(db, threshold)
    return success({
        "products": products,
        "count": len(products),
        "threshold": threshold if threshold is not None else "default",
    })


@router.get("/reorder")
def reorder_products(db: Session = Depends(get_db)):
    products = crud.get_reorder_products(db)
    return success({"products": products, "count": len(products)})


@router.get("/alerts")
def list_alerts(
    alert_type: Optional[AlertType] = Query(None, alias="type"),
    resolved: bool = False,
    db: Session = Depends(get_db)
):
    alerts = crud.get_alerts(db, alert_type, resolved)
    return success({"alerts": alerts, "count": len(alerts)})


@router.put("/alerts/{alert_id}/resolve")
def resolve_alert(
    alert_id: str,
    payload: Optional[ResolveAlertRequest] = Body(None),
    db: Session = Depends(get_db)
):
    if not crud.resolve_alert(db, alert_id):
        raise NotFound("Alert", {"alert_id": alert_id, "reason": "unknown or already resolved"})
    alert = crud.get_alert(db, alert_id)
    notes = payload.notes if payload else None
    return success({"alert_id": alert_id, "resolved_at": alert["resolved_at"], "notes": notes}, "Alert resolved")


@router.get("/export")
def export(
    export_type: str = Query("all", alias="type"),
    export_format: str = Query("json", alias="format"),
    db: Session = Depends(get_db)
):
    body, media_type, filename = export_inventory(db, export_type, export_format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if media_type == "text/csv":
        return Response(content=body, media_type=media_type, headers=headers)
    return JSONResponse(content=jsonable_encoder(body), headers=headers)


@router.get("/adjustments")
def list_adjustments(
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1),
    product_id: Optional[str] = Query(None, alias="productId"),
    adjustment_type: Optional[AdjustmentType] = Query(None, alias="type"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db)
):
    result = crud.get_adjustments(db, page, limit, product_id, adjustment_type, start_date, end_date)
    return success(result)


@router.post("/adjustments")
def create_adjustment(payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    request = parse_adjustment(payload)
    adjustment_id = crud.create_adjustment(db, request)
    inventory = crud.get_product_inventory(db, request.product_id)
    return created(
        {"adjustment_id": adjustment_id, "inventory": inventory},
        "Inventory adjustment created successfully"
    )


@router.post("/adjustments/bulk")
def bulk_adjustments(payload: BulkAdjustmentRequest, db: Session = Depends(get_db)):
    results = crud.bulk_adjustments(db, payload.adjustments)
    successful = sum(1 for result in results if result.success)
    return success({
        "processed": len(results),
        "successful": successful,
        "failed": len(results) - successful,
        "results": [result.model_dump() for result in results],
    }, "Bulk adjustments processed")


@router.get("/movement")
def inventory_movement(
    group_by: str = Query("date", alias="groupBy", pattern="^(date|type|product)$"),
    product_id: Optional[str] = Query(None, alias="productId"),
    adjustment_type: Optional[AdjustmentType] = Query(None, alias="type"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db)
):
    return success(crud.get_inventory_movement(db, group_by, product_id, adjustment_type, start_date, end_date))


@router.get("/products/{product_id}")
def product_inventory(product_id: str, db: Session = Depends(get_db)):
    inventory = crud.get_product_inventory(db, product_id)
    if not inventory:
        raise NotFound("Product", {"product_id": product_id})
    return success(inventory)


@router.post("/sync")
def sync_stock_status(payload: Optional[SyncRequest] = Body(None), db: Session = Depends(get_db)):
    product_id = payload.product_id if payload else None
    corrected = crud.sync_stock_status(db, product_id)
    return success({"corrected": corrected}, "Stock status synchronized")
