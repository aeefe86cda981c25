"""
Pure receipt reconciliation services: item matching, allocation trees,
allocation reconciliation and installment plans.
"""

from receipt.services.matching import (
    MANUAL_ITEM_MATCH_THRESHOLD,
    normalize_text,
    calculate_token_score,
    find_best_purchase_order_match,
    auto_link_item,
    link_items,
)
from receipt.services.allocation_tree import (
    build_cost_center_tree_data,
    build_chart_account_tree_data,
    compute_initial_cc_expand,
    compute_initial_expand,
    valid_cost_center_ids,
    valid_chart_account_ids,
)
from receipt.services.reconciliation import (
    base_total_for_allocation,
    allocations_sum,
    allocations_sum_ok,
    allocations_valid,
    fill_missing_allocation_values,
    distribute_evenly,
    fill_single_row,
)
from receipt.services.installments import generate_installments, is_fiscal_valid

__all__ = [
    "MANUAL_ITEM_MATCH_THRESHOLD",
    "normalize_text",
    "calculate_token_score",
    "find_best_purchase_order_match",
    "auto_link_item",
    "link_items",
    "build_cost_center_tree_data",
    "build_chart_account_tree_data",
    "compute_initial_cc_expand",
    "compute_initial_expand",
    "valid_cost_center_ids",
    "valid_chart_account_ids",
    "base_total_for_allocation",
    "allocations_sum",
    "allocations_sum_ok",
    "allocations_valid",
    "fill_missing_allocation_values",
    "distribute_evenly",
    "fill_single_row",
    "generate_installments",
    "is_fiscal_valid",
]
