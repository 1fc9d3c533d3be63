# Import models and schemas first
from .models import InventoryAdjustment, LowStockAlert, AdjustmentType, AlertType, StockStatus
from .schemas import AdjustmentRequest, StockIncrease, StockDecrease, StockSet, StockTransfer, parse_adjustment
from .stock import calculate_stock_status, compute_new_quantity

# Export crud functions
from .crud import (
    create_adjustment,
    bulk_adjustments,
    check_low_stock_alert,
    resolve_alert,
    sync_stock_status,
    get_product_inventory,
    get_adjustments,
    get_low_stock_products,
    get_reorder_products,
    get_inventory_stats,
    get_inventory_value_by_category,
    get_alerts,
    get_active_alerts,
    get_alert,
    get_inventory_movement
)
from .export import export_inventory

# Router last to avoid circular imports
from .routes import router
