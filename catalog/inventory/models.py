# Inventory ledger and low stock alert tables

import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, Index, event, text
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..core.exceptions import LedgerImmutable
from ..core.helpers import generate_id, utcnow
from ..e_commerce.models import Product


class AdjustmentType(str, enum.Enum):
    purchase = "purchase"
    sale = "sale"
    return_ = "return"
    damage = "damage"
    theft = "theft"
    adjustment = "adjustment"
    transfer = "transfer"


class StockStatus(str, enum.Enum):
    in_stock = "in_stock"
    low_stock = "low_stock"
    out_of_stock = "out_of_stock"


class AlertType(str, enum.Enum):
    low_stock = "low_stock"
    reorder = "reorder"


ADJUSTMENT_TYPES = [member.value for member in AdjustmentType]
INBOUND_TYPES = {AdjustmentType.purchase.value, AdjustmentType.return_.value}


class InventoryAdjustment(Base):
    __tablename__ = "inventory_adjustments"
    id = Column(String(40), primary_key=True, default=lambda: generate_id("adj"))
    product_id = Column(String(40), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    adjustment_type = Column(String(20), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    notes = Column(Text)
    created_by = Column(String(100))
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    product = relationship(Product)


class LowStockAlert(Base):
    __tablename__ = "low_stock_alerts"
    id = Column(String(40), primary_key=True, default=lambda: generate_id("alert"))
    product_id = Column(String(40), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type = Column(String(20), nullable=False, default=AlertType.low_stock.value)
    current_quantity = Column(Integer, nullable=False)
    threshold = Column(Integer, nullable=False)
    is_resolved = Column(Boolean, nullable=False, default=False, index=True)
    resolved_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    product = relationship(Product)


# At most one open alert per (product, alert type)
Index(
    "uq_low_stock_alerts_open",
    LowStockAlert.product_id,
    LowStockAlert.alert_type,
    unique=True,
    sqlite_where=text("is_resolved = 0"),
    postgresql_where=text("is_resolved = false"),
)


@event.listens_for(InventoryAdjustment, "before_update")
def _reject_ledger_update(mapper, connection, target):
    raise LedgerImmutable(f"Inventory adjustment {target.id} is immutable")


@event.listens_for(InventoryAdjustment, "before_delete")
def _reject_ledger_delete(mapper, connection, target):
    raise LedgerImmutable(f"Inventory adjustment {target.id} cannot be deleted")
