"""
Optional FastAPI REST endpoints for the receipt reconciliation core.
Can be run with: uvicorn receipt.api:app --reload
"""

import json
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from receipt.schemas.invoice import InvoiceLineItem
from receipt.schemas.po import PurchaseOrder, PurchaseOrderItem
from receipt.schemas.allocation import AllocationRow
from receipt.services.matching import find_best_purchase_order_match, link_items
from receipt.services.allocation_tree import (
    build_chart_account_tree_data,
    build_cost_center_tree_data,
    compute_initial_expand,
    selectable_ids,
)
from receipt.services.reconciliation import (
    allocations_sum,
    allocations_sum_ok,
    allocations_valid,
    base_total_for_allocation,
    distribute_evenly,
    fill_missing_allocation_values,
    fill_single_row,
)
from receipt.services.installments import generate_installments
from receipt.main import process_receipt
from receipt.utils.logging import setup_logging
from receipt.config import get_config


logger = setup_logging(__name__)
config = get_config()

app = FastAPI(
    title="Receipt Reconciliation API",
    description="Item matching and allocation reconciliation for purchase receipts",
    version="1.0.0",
)


class MatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item: InvoiceLineItem
    po_items: List[PurchaseOrderItem] = Field(default_factory=list, alias="poItems")
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class LinkRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[InvoiceLineItem] = Field(default_factory=list)
    po_items: List[PurchaseOrderItem] = Field(default_factory=list, alias="poItems")
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class TreeRequest(BaseModel):
    records: List[Dict[str, Any]] = Field(default_factory=list)


class AllocationRequest(BaseModel):
    """Rows plus either an explicit base total or the receipt it comes from."""
    model_config = ConfigDict(populate_by_name=True)

    rows: List[AllocationRow] = Field(default_factory=list)
    base_total: Optional[float] = Field(default=None, alias="baseTotal")
    receipt_type: Literal["avulso", "purchase_order"] = Field(default="purchase_order", alias="receiptType")
    manual_total: Optional[str] = Field(default=None, alias="manualTotal")
    purchase_order: Optional[PurchaseOrder] = Field(default=None, alias="purchaseOrder")
    mode: Literal["fill_missing", "distribute", "single_row"] = "fill_missing"
    require_cost_center: Optional[bool] = Field(default=None, alias="requireCostCenter")

    def resolve_base_total(self) -> float:
        if self.base_total is not None:
            return self.base_total
        return base_total_for_allocation(self.receipt_type, self.manual_total, self.purchase_order)


class InstallmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: float
    count: int = 1
    first_due_date: Optional[str] = Field(default=None, alias="firstDueDate")
    method: Optional[str] = None


def _error_response(e: Exception, message: str) -> JSONResponse:
    logger.exception(f"{message}: {e}")
    return JSONResponse(
        content={
            "error": str(e),
            "message": message,
        },
        status_code=500,
    )


def _tree_payload(tree) -> Dict[str, Any]:
    expand = compute_initial_expand(tree)
    return {
        "tree": [group.model_dump(mode="json") for group in tree],
        "expand": expand.model_dump(mode="json"),
        "valid_ids": sorted(selectable_ids(tree)),
    }


@app.post("/match")
async def match_endpoint(request: MatchRequest):
    """Best purchase order item for one invoice item."""
    try:
        match = find_best_purchase_order_match(request.item, request.po_items, request.threshold)
        return {"match": match.model_dump() if match else None}
    except Exception as e:
        return _error_response(e, "Failed to match item")


@app.post("/match/link")
async def link_endpoint(request: LinkRequest):
    """Auto-link a batch of invoice items (XML import)."""
    try:
        items, matches = link_items(request.items, request.po_items, request.threshold)
        return {
            "items": [item.model_dump(mode="json", by_alias=True) for item in items],
            "matches": [match.model_dump() if match else None for match in matches],
        }
    except Exception as e:
        return _error_response(e, "Failed to link items")


@app.post("/cost-centers/tree")
async def cost_center_tree_endpoint(request: TreeRequest):
    """Cost center tree with its initial expand sets and valid targets."""
    try:
        return _tree_payload(build_cost_center_tree_data(request.records))
    except Exception as e:
        return _error_response(e, "Failed to build cost center tree")


@app.post("/chart-accounts/tree")
async def chart_account_tree_endpoint(request: TreeRequest):
    """Chart-of-accounts tree with its initial expand sets and valid targets."""
    try:
        return _tree_payload(build_chart_account_tree_data(request.records))
    except Exception as e:
        return _error_response(e, "Failed to build chart of accounts tree")


@app.post("/allocations/check")
async def allocation_check_endpoint(request: AllocationRequest):
    """Check whether the allocation rows reconcile to the total."""
    try:
        base_total = request.resolve_base_total()
        return {
            "base_total": base_total,
            "allocations_sum": allocations_sum(request.rows),
            "sum_ok": allocations_sum_ok(request.rows, base_total),
            "rows_valid": allocations_valid(request.rows),
        }
    except Exception as e:
        return _error_response(e, "Failed to check allocations")


@app.post("/allocations/fill")
async def allocation_fill_endpoint(request: AllocationRequest):
    """
    Fill allocation rows.

    Validation failures are not errors: they come back with ok false, the
    message for the user and the rows unchanged.
    """
    try:
        base_total = request.resolve_base_total()
        if request.mode == "distribute":
            result = distribute_evenly(request.rows, base_total)
        elif request.mode == "single_row":
            result = fill_single_row(request.rows, base_total)
        else:
            result = fill_missing_allocation_values(request.rows, base_total, request.require_cost_center)

        payload = result.model_dump(mode="json", by_alias=True)
        payload["sum_ok"] = allocations_sum_ok(result.rows, base_total)
        return payload
    except Exception as e:
        return _error_response(e, "Failed to fill allocations")


@app.post("/installments")
async def installments_endpoint(request: InstallmentRequest):
    """Generate a monthly installment plan."""
    try:
        result = generate_installments(request.total, request.count, request.first_due_date, request.method)
        return result.model_dump(mode="json", by_alias=True)
    except Exception as e:
        return _error_response(e, "Failed to generate installments")


@app.post("/receipts/process")
async def process_receipt_endpoint(document: Dict[str, Any]):
    """Run a whole receipt document through the reconciliation steps."""
    try:
        output = await process_receipt(document)
        return JSONResponse(content=output.model_dump(mode="json"), status_code=200)
    except ValidationError as e:
        return JSONResponse(
            content={"error": json.loads(e.json(include_url=False)), "message": "Invalid receipt document"},
            status_code=422,
        )
    except Exception as e:
        return _error_response(e, "Failed to process receipt")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/config")
async def get_config_endpoint():
    """Get current configuration (sanitized)."""
    return {
        "manual_item_match_threshold": config.MANUAL_ITEM_MATCH_THRESHOLD,
        "allocation_require_cost_center": config.ALLOCATION_REQUIRE_COST_CENTER,
        "receipt_types": list(config.RECEIPT_TYPES),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
