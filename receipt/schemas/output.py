"""
Output schemas for receipt processing results.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class ItemLinkDetail(BaseModel):
    """Link outcome for one invoice item."""
    index: int
    description: str
    purchase_order_item_id: Optional[Any] = None
    match_source: Optional[str] = None
    score: Optional[float] = None
    level: str = "NO_MATCH"
    explanation: str = ""


class AllocationSummary(BaseModel):
    """Reconciliation status of the apportionment rows."""
    base_total: float
    allocations_sum: float
    sum_ok: bool
    rows_valid: bool
    invalid_target_rows: List[int] = Field(default_factory=list)


class ReceiptSummary(BaseModel):
    """Final processing output for a receipt."""
    receipt_id: str
    processing_timestamp: datetime
    items: List[ItemLinkDetail] = Field(default_factory=list)
    unlinked_items: List[int] = Field(default_factory=list)
    allocation: AllocationSummary
    fiscal_valid: bool
    messages: List[str] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "receipt_id": "REC-2026-001",
                "processing_timestamp": "2026-10-19T10:30:00Z",
                "items": [],
                "unlinked_items": [],
                "allocation": {
                    "base_total": 100.0,
                    "allocations_sum": 100.0,
                    "sum_ok": True,
                    "rows_valid": True,
                    "invalid_target_rows": [],
                },
                "fiscal_valid": True,
                "messages": [],
            }
        }
    }
