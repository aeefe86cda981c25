"""
Invoice line item schema.
Items typed by hand on the receipt screen or taken from an NF-e XML preview.
"""

from typing import Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from receipt.utils import to_text


class InvoiceLineItem(BaseModel):
    """A single invoice line item awaiting a purchase-order link."""
    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = None
    description: str = ""
    quantity: float = Field(default=1.0, ge=0.0)
    unit_price: float = Field(default=0.0, ge=0.0, alias="unitPrice")
    purchase_order_item_id: Optional[Union[int, str]] = Field(default=None, alias="purchaseOrderItemId")
    match_source: Optional[Literal["auto", "manual"]] = Field(default=None, alias="matchSource")

    @field_validator("code", mode="before")
    @classmethod
    def _stringify_code(cls, value):
        if value is None:
            return None
        return to_text(value)

    @field_validator("description", mode="before")
    @classmethod
    def _stringify_description(cls, value):
        return to_text(value)

    @property
    def total_price(self) -> float:
        return self.quantity * self.unit_price

    def is_linked(self) -> bool:
        """Check whether the item already points at a purchase-order item."""
        return bool(self.purchase_order_item_id)
