"""
Shared state object for a receipt being reconciled.
Workflow steps read from and write to this state.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from receipt.schemas.invoice import InvoiceLineItem
from receipt.schemas.po import PurchaseOrder
from receipt.schemas.allocation import AllocationRow, Installment
from receipt.schemas.output import ItemLinkDetail
from receipt.services.reconciliation import (
    allocations_sum,
    allocations_sum_ok,
    base_total_for_allocation,
)


class ValidationMessage(BaseModel):
    """A single advisory message shown to the user."""
    timestamp: datetime
    component: str
    level: Literal["info", "warning", "error"] = "info"
    message: str


class ReceiptState(BaseModel):
    """
    Mutable state of one receipt in the reconciliation workflow.

    Each step:
    1. Reads relevant state
    2. Applies a pure service to it
    3. Replaces the affected lists with the service result
    4. Adds a message for the user
    """
    model_config = ConfigDict(populate_by_name=True)

    # Identification
    receipt_id: str = Field(alias="receiptId")
    receipt_type: Literal["avulso", "purchase_order"] = Field(default="purchase_order", alias="receiptType")

    # Invoice
    manual_total: Optional[str] = Field(default=None, alias="manualTotal")
    purchase_order: Optional[PurchaseOrder] = Field(default=None, alias="purchaseOrder")
    manual_items: List[InvoiceLineItem] = Field(default_factory=list, alias="manualItems")

    # Financial dimensions (raw records as returned by the backend)
    cost_centers: List[Dict[str, Any]] = Field(default_factory=list, alias="costCenters")
    chart_accounts: List[Dict[str, Any]] = Field(default_factory=list, alias="chartAccounts")

    # Apportionment and payment
    allocations: List[AllocationRow] = Field(default_factory=list)
    payment_method_code: Optional[str] = Field(default=None, alias="paymentMethodCode")
    invoice_due_date: Optional[str] = Field(default=None, alias="invoiceDueDate")
    has_installments: bool = Field(default=False, alias="hasInstallments")
    installments: List[Installment] = Field(default_factory=list)

    # Workflow results
    item_links: List[ItemLinkDetail] = Field(default_factory=list, alias="itemLinks")

    # Advisory messages (never exceptions)
    messages: List[ValidationMessage] = Field(default_factory=list)

    @property
    def base_total_for_allocation(self) -> float:
        return base_total_for_allocation(self.receipt_type, self.manual_total, self.purchase_order)

    @property
    def allocations_sum(self) -> float:
        return allocations_sum(self.allocations)

    @property
    def allocations_sum_ok(self) -> bool:
        return allocations_sum_ok(self.allocations, self.base_total_for_allocation)

    @property
    def purchase_order_items(self) -> list:
        return self.purchase_order.items if self.purchase_order else []

    def add_message(
        self,
        component: str,
        message: str,
        level: str = "info",
    ) -> None:
        """Add an entry to the message log."""
        self.messages.append(
            ValidationMessage(
                timestamp=datetime.utcnow(),
                component=component,
                level=level,
                message=message,
            )
        )

    def get_messages_text(self) -> str:
        """Get a human-readable summary of the messages."""
        if not self.messages:
            return "No messages."
        return "\n".join(f"[{entry.component}] {entry.level}: {entry.message}" for entry in self.messages)
