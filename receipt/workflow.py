"""
Receipt workflow steps.
Each step applies one service to a ReceiptState and records what happened.
"""

from typing import List

from receipt.state import ReceiptState
from receipt.schemas.output import ItemLinkDetail
from receipt.services.matching import link_items
from receipt.services.reconciliation import fill_missing_allocation_values
from receipt.utils.confidence import interpret_match
from receipt.utils.logging import setup_logging, log_step_action, log_validation_failure
from receipt.config import get_config


logger = setup_logging(__name__)
config = get_config()


async def item_linking_step(state: ReceiptState) -> ReceiptState:
    """
    Item Linking Step.

    Auto-links the receipt items to the purchase order items. Items linked
    by hand keep their link; items whose best match stays below the
    threshold are reported as needing manual linking.

    Updates state:
    - manual_items
    - item_links (one entry per item)
    """
    logger.info(f"[ItemLinking] Linking items of receipt {state.receipt_id}")
    details: List[ItemLinkDetail] = []

    try:
        if not state.manual_items:
            state.add_message("ItemLinking", "No items to link")
            state.item_links = details
            return state

        if not state.purchase_order_items:
            state.add_message("ItemLinking", "Purchase order has no items; every item requires manual linking", level="warning")
            state.item_links = [
                ItemLinkDetail(
                    index=index,
                    description=item.description,
                    purchase_order_item_id=item.purchase_order_item_id,
                    match_source=item.match_source,
                )
                for index, item in enumerate(state.manual_items)
            ]
            return state

        linked_items, matches = link_items(
            state.manual_items,
            state.purchase_order_items,
            config.MANUAL_ITEM_MATCH_THRESHOLD,
        )
        state.manual_items = linked_items

        unlinked = 0
        for index, (item, match) in enumerate(zip(linked_items, matches)):
            detail = ItemLinkDetail(
                index=index,
                description=item.description,
                purchase_order_item_id=item.purchase_order_item_id,
                match_source=item.match_source,
            )
            if match is not None:
                level, explanation = interpret_match(match.score, config.MANUAL_ITEM_MATCH_THRESHOLD)
                detail.score = match.score
                detail.level = level
                detail.explanation = explanation
            if not item.is_linked():
                unlinked += 1
            details.append(detail)

        log_step_action(
            logger,
            "ItemLinking",
            "linking_complete",
            details={"items": len(linked_items), "unlinked": unlinked},
        )
        if unlinked:
            state.add_message("ItemLinking", f"{unlinked} item(s) require manual linking", level="warning")
        else:
            state.add_message("ItemLinking", f"All {len(linked_items)} item(s) linked")

    except Exception as e:
        logger.exception(f"[ItemLinking] Unexpected error: {e}")
        state.add_message("ItemLinking", f"Error during item linking: {str(e)}", level="error")

    state.item_links = details
    return state


async def allocation_fill_step(state: ReceiptState) -> ReceiptState:
    """
    Allocation Fill Step.

    Fills empty allocation rows when the rows do not reconcile yet. A
    failed fill leaves the rows untouched and only adds a message.

    Updates state:
    - allocations
    """
    logger.info(f"[AllocationFill] Reconciling allocations of receipt {state.receipt_id}")

    try:
        if not state.allocations:
            state.add_message("AllocationFill", "Add at least one allocation row", level="warning")
            return state

        base_total = state.base_total_for_allocation
        if state.allocations_sum_ok:
            log_step_action(logger, "AllocationFill", "already_reconciled", details={"base_total": base_total})
            return state

        result = fill_missing_allocation_values(
            state.allocations,
            base_total,
            config.ALLOCATION_REQUIRE_COST_CENTER,
        )
        if not result.ok:
            state.add_message("AllocationFill", result.message, level="warning")
            return state

        state.allocations = result.rows
        state.add_message("AllocationFill", result.message)
        log_step_action(
            logger,
            "AllocationFill",
            "rows_filled",
            details={"filled_indices": result.filled_indices, "base_total": base_total},
        )

        if not state.allocations_sum_ok:
            message = "Allocation sum differs from the total"
            log_validation_failure(logger, "allocation", message, {"sum": state.allocations_sum, "base_total": base_total})
            state.add_message("AllocationFill", message, level="warning")

    except Exception as e:
        logger.exception(f"[AllocationFill] Unexpected error: {e}")
        state.add_message("AllocationFill", f"Error during allocation fill: {str(e)}", level="error")

    return state
