"""
Purchase Order schema and data models.
Represents the order a receipt is reconciled against.
"""

import math
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from receipt.utils import to_text


class PurchaseOrderItem(BaseModel):
    """A single line item in a Purchase Order (a match candidate)."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Any] = None
    product_code: Optional[str] = Field(default=None, alias="productCode")
    item_code: Optional[str] = Field(default=None, alias="itemCode")
    code: Optional[str] = None
    description: str = ""
    quantity: Optional[float] = None
    unit_price: Optional[float] = Field(default=None, alias="unitPrice")

    @field_validator("product_code", "item_code", "code", mode="before")
    @classmethod
    def _stringify_codes(cls, value):
        if value is None:
            return None
        return to_text(value)

    @field_validator("description", mode="before")
    @classmethod
    def _stringify_description(cls, value):
        return to_text(value)

    @property
    def candidate_code(self) -> str:
        """First non-empty of product code, item code and code."""
        return self.product_code or self.item_code or self.code or ""


class PurchaseOrder(BaseModel):
    """A Purchase Order record."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Union[int, str]] = None
    number: Optional[str] = Field(default=None, alias="orderNumber")
    total_value: float = Field(default=0.0, alias="totalValue")
    items: List[PurchaseOrderItem] = Field(default_factory=list)

    @field_validator("total_value", mode="before")
    @classmethod
    def _coerce_total(cls, value):
        try:
            total = float(value or 0)
        except (TypeError, ValueError):
            return 0.0
        return total if math.isfinite(total) else 0.0


class ItemMatch(BaseModel):
    """Best purchase-order candidate for one invoice item."""
    id: Optional[Any] = None
    score: float
    auto_linkable: bool = False
