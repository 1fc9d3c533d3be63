# Request and response schemas for the inventory module.
# Adjustment requests are a tagged union on ``type`` so each kind carries its own quantity rule.

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from ..core.config import MAX_STOCK_QUANTITY
from ..core.exceptions import InvalidAdjustmentType, ValidationFailure
from .models import ADJUSTMENT_TYPES


class AdjustmentBase(BaseModel):
    product_id: str = Field(..., alias="productId", min_length=1)
    reason: str = Field(..., max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)
    created_by: Optional[str] = Field(None, alias="createdBy", max_length=100)

    class Config:
        populate_by_name = True

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("reason must not be blank")
        return value


class StockIncrease(AdjustmentBase):
    type: Literal["purchase", "return"]
    quantity: int = Field(..., gt=0, le=MAX_STOCK_QUANTITY)


class StockDecrease(AdjustmentBase):
    type: Literal["sale", "damage", "theft"]
    quantity: int = Field(..., gt=0, le=MAX_STOCK_QUANTITY)


class StockSet(AdjustmentBase):
    """Absolute recount: quantity becomes the new stock level."""
    type: Literal["adjustment"]
    quantity: int = Field(..., ge=0, le=MAX_STOCK_QUANTITY)


class StockTransfer(AdjustmentBase):
    """Signed delta: positive moves stock in, negative moves it out."""
    type: Literal["transfer"]
    quantity: int = Field(..., ge=-MAX_STOCK_QUANTITY, le=MAX_STOCK_QUANTITY)

    @field_validator("quantity")
    @classmethod
    def quantity_not_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("transfer quantity must not be zero")
        return value


AdjustmentRequest = Annotated[
    Union[StockIncrease, StockDecrease, StockSet, StockTransfer],
    Field(discriminator="type"),
]

_adjustment_adapter = TypeAdapter(AdjustmentRequest)

_REQUIRED_FIELDS = {
    "productId": ("productId", "product_id"),
    "type": ("type",),
    "quantity": ("quantity",),
    "reason": ("reason",),
}


def parse_adjustment(payload: Mapping[str, Any]) -> AdjustmentRequest:
    """
    Turn a loose JSON object into a typed adjustment request.

    Raises:
        ValidationFailure: a required field is missing or a value is out of range
        InvalidAdjustmentType: ``type`` is not one of the seven adjustment kinds
    """
    if not isinstance(payload, Mapping):
        raise ValidationFailure("Adjustment must be an object")

    missing = [
        name for name, keys in _REQUIRED_FIELDS.items()
        if all(payload.get(key) is None or payload.get(key) == "" for key in keys)
    ]
    if missing:
        raise ValidationFailure(
            "Product ID, type, quantity, and reason are required",
            {"missing": missing},
        )

    if payload.get("type") not in ADJUSTMENT_TYPES:
        raise InvalidAdjustmentType(payload.get("type"))

    try:
        return _adjustment_adapter.validate_python(dict(payload))
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"][1:]) or "adjustment", "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationFailure("Invalid adjustment", {"errors": errors})


class BulkAdjustmentRequest(BaseModel):
    adjustments: List[Dict[str, Any]] = Field(..., min_length=1)


class BulkAdjustmentResult(BaseModel):
    product_id: Optional[str] = None
    success: bool
    adjustment_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class ResolveAlertRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class SyncRequest(BaseModel):
    product_id: Optional[str] = Field(None, alias="productId")

    class Config:
        populate_by_name = True
