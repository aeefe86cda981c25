"""
Main entry point for receipt reconciliation.
"""

import asyncio
import json
import sys
from datetime import datetime
from typing import Any, Dict, Union

from pydantic import ValidationError

from receipt.state import ReceiptState
from receipt.workflow import item_linking_step, allocation_fill_step
from receipt.schemas.output import AllocationSummary, ReceiptSummary
from receipt.services.allocation_tree import valid_chart_account_ids, valid_cost_center_ids
from receipt.services.reconciliation import allocations_valid, rows_with_invalid_targets
from receipt.services.installments import is_fiscal_valid
from receipt.utils.logging import setup_logging
from receipt.utils import dict_to_json_string
from receipt.config import get_config


logger = setup_logging(__name__)
config = get_config()


def load_receipt_from_file(receipt_file: str) -> ReceiptState:
    """Load a receipt document from a JSON file."""
    try:
        with open(receipt_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error(f"Receipt file not found: {receipt_file}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in receipt file {receipt_file}: {e}")
        raise

    state = build_state(data)
    logger.info(f"Loaded receipt {state.receipt_id} from {receipt_file}")
    return state


def build_state(data: Dict[str, Any]) -> ReceiptState:
    """Build a ReceiptState from a receipt document, generating an id if needed."""
    data = dict(data)
    if not data.get("receiptId") and not data.get("receipt_id"):
        data["receiptId"] = f"REC-{datetime.utcnow().strftime('%Y%m%d%H%M%S')}"
    try:
        return ReceiptState.model_validate(data)
    except ValidationError as e:
        logger.error(f"Invalid receipt document: {e.error_count()} error(s)")
        raise


def build_output(state: ReceiptState) -> ReceiptSummary:
    """Build final output from state."""
    base_total = state.base_total_for_allocation

    invalid_targets = []
    if state.cost_centers or state.chart_accounts:
        invalid_targets = rows_with_invalid_targets(
            state.allocations,
            valid_cost_center_ids(state.cost_centers),
            valid_chart_account_ids(state.chart_accounts),
        )

    allocation = AllocationSummary(
        base_total=base_total,
        allocations_sum=state.allocations_sum,
        sum_ok=state.allocations_sum_ok,
        rows_valid=allocations_valid(state.allocations),
        invalid_target_rows=invalid_targets,
    )

    return ReceiptSummary(
        receipt_id=state.receipt_id,
        processing_timestamp=datetime.utcnow(),
        items=state.item_links,
        unlinked_items=[index for index, item in enumerate(state.manual_items) if not item.is_linked()],
        allocation=allocation,
        fiscal_valid=is_fiscal_valid(
            state.installments,
            base_total,
            state.payment_method_code,
            state.invoice_due_date,
            state.has_installments,
        ),
        messages=[f"[{entry.component}] {entry.message}" for entry in state.messages],
    )


async def process_receipt(receipt: Union[ReceiptState, Dict[str, Any]]) -> ReceiptSummary:
    """
    Run a receipt through the reconciliation steps.

    Args:
        receipt: ReceiptState or a receipt document

    Returns:
        ReceiptSummary with link and allocation results
    """
    state = receipt if isinstance(receipt, ReceiptState) else build_state(receipt)

    logger.info(f"Starting receipt reconciliation for {state.receipt_id}")
    logger.info(f"Items: {len(state.manual_items)}, allocation rows: {len(state.allocations)}")

    state = await item_linking_step(state)
    state = await allocation_fill_step(state)

    output = build_output(state)

    logger.info(
        f"Receipt processing complete. Unlinked items: {len(output.unlinked_items)}, "
        f"allocation sum ok: {output.allocation.sum_ok}"
    )
    return output


def format_output_json(output: ReceiptSummary) -> str:
    """Format output as JSON string."""
    return dict_to_json_string(output.model_dump(mode="json"))


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: python -m receipt.main <receipt.json>")
        return 2

    try:
        state = load_receipt_from_file(argv[0])
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output = asyncio.run(process_receipt(state))
    print(format_output_json(output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
