"""
Pure stock arithmetic used by the inventory ledger.

Nothing here touches the database: given a current quantity and an
adjustment, work out the new quantity and the derived stock status.
"""
from typing import Union

from ..core.config import MAX_STOCK_QUANTITY
from ..core.exceptions import InsufficientStock, InvalidAdjustmentType, ValidationFailure
from .models import AdjustmentType, StockStatus


def calculate_stock_status(quantity: int, low_stock_threshold: int) -> str:
    """
    out_of_stock when nothing is left, low_stock while at or under the
    threshold, in_stock otherwise.
    """
    if quantity == 0:
        return StockStatus.out_of_stock.value
    if quantity <= low_stock_threshold:
        return StockStatus.low_stock.value
    return StockStatus.in_stock.value


def compute_new_quantity(current: int, adjustment_type: Union[str, AdjustmentType], quantity: int, product_id: str = "") -> int:
    """
    Apply one adjustment to ``current``.

    purchase/return add, sale/damage/theft subtract, adjustment sets an
    absolute value and transfer applies a signed delta. Raises
    InsufficientStock when the result would be negative and
    ValidationFailure when it would exceed MAX_STOCK_QUANTITY.
    """
    try:
        kind = AdjustmentType(adjustment_type)
    except ValueError:
        raise InvalidAdjustmentType(adjustment_type)

    if kind in (AdjustmentType.purchase, AdjustmentType.return_):
        new_quantity = current + quantity
    elif kind in (AdjustmentType.sale, AdjustmentType.damage, AdjustmentType.theft):
        new_quantity = current - quantity
    elif kind == AdjustmentType.adjustment:
        new_quantity = quantity
    else:
        new_quantity = current + quantity

    if new_quantity < 0:
        raise InsufficientStock(product_id, available=current, requested=abs(quantity))
    if new_quantity > MAX_STOCK_QUANTITY:
        raise ValidationFailure(
            f"Stock quantity cannot exceed {MAX_STOCK_QUANTITY}",
            {"product_id": product_id, "current": current, "quantity": quantity, "maximum": MAX_STOCK_QUANTITY},
        )
    return new_quantity
