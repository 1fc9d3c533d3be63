"""
Inventory export: JSON snapshots of every report, CSV for the two
tabular ones (ledger entries and low stock products).
"""
from datetime import datetime
from typing import Any, Dict, List, Tuple
import csv
import io
import logging

from sqlalchemy.orm import Session

from ..core.exceptions import ValidationFailure
from ..core.helpers import utcnow
from . import crud

logger = logging.getLogger(__name__)

EXPORT_TYPES = ("all", "adjustments", "lowStock", "reorder", "alerts", "stats")
CSV_TYPES = ("adjustments", "lowStock")
EXPORT_FORMATS = ("json", "csv")
EXPORT_ROW_LIMIT = 10000

ADJUSTMENT_COLUMNS = ["ID", "Product ID", "Product Name", "Type", "Quantity", "Reason", "Created At"]
LOW_STOCK_COLUMNS = ["ID", "Name", "SKU", "Current Quantity", "Low Stock Threshold", "Status"]


def _all_adjustments(db: Session) -> List[Dict[str, Any]]:
    return crud.get_adjustments(db, page=1, limit=EXPORT_ROW_LIMIT, max_limit=EXPORT_ROW_LIMIT)["adjustments"]


def collect_export_data(db: Session, export_type: str) -> Any:
    if export_type == "adjustments":
        return _all_adjustments(db)
    if export_type == "lowStock":
        return crud.get_low_stock_products(db)
    if export_type == "reorder":
        return crud.get_reorder_products(db)
    if export_type == "alerts":
        return crud.get_active_alerts(db)
    if export_type == "stats":
        return crud.get_inventory_stats(db)
    return {
        "stats": crud.get_inventory_stats(db),
        "low_stock": crud.get_low_stock_products(db),
        "reorder": crud.get_reorder_products(db),
        "alerts": crud.get_active_alerts(db),
        "adjustments": _all_adjustments(db),
    }


def _to_csv(export_type: str, rows: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if export_type == "adjustments":
        writer.writerow(ADJUSTMENT_COLUMNS)
        for row in rows:
            created_at = row["created_at"]
            writer.writerow([
                row["id"],
                row["product_id"],
                row["product_name"] or "",
                row["adjustment_type"],
                row["quantity"],
                row["reason"],
                created_at.isoformat() if isinstance(created_at, datetime) else created_at,
            ])
    else:
        writer.writerow(LOW_STOCK_COLUMNS)
        for row in rows:
            writer.writerow([
                row["id"],
                row["name"],
                row["sku"],
                row["stock_quantity"],
                row["low_stock_threshold"],
                row["stock_status"],
            ])
    return buffer.getvalue()


def export_inventory(db: Session, export_type: str = "all", export_format: str = "json") -> Tuple[Any, str, str]:
    """
    Build an export document.

    Returns:
        (body, media_type, filename): ``body`` is a dict for JSON and a
        string for CSV.

    Raises:
        ValidationFailure: unknown type/format, or CSV asked for a report
        that has no tabular form
    """
    if export_type not in EXPORT_TYPES:
        raise ValidationFailure(f"Invalid export type: {export_type}", {"allowed": list(EXPORT_TYPES)})
    if export_format not in EXPORT_FORMATS:
        raise ValidationFailure(f"Invalid export format: {export_format}", {"allowed": list(EXPORT_FORMATS)})
    if export_format == "csv" and export_type not in CSV_TYPES:
        raise ValidationFailure(
            f"CSV export is not available for {export_type}",
            {"csv_types": list(CSV_TYPES)},
        )

    data = collect_export_data(db, export_type)
    filename = f"inventory-{export_type}.{export_format}"
    logger.info(f"Exporting inventory {export_type} as {export_format}")

    if export_format == "csv":
        return _to_csv(export_type, data), "text/csv", filename
    return {"exported_at": utcnow(), "type": export_type, "data": data}, "application/json", filename
