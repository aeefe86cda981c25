"""
Allocation reconciliation
Checks that the apportionment rows of a receipt add up to its total and
fills the rows that are still empty.
"""

import math
from typing import Any, Iterable, List, Optional, Sequence, Set

from pydantic import ValidationError

from receipt.schemas.allocation import AllocationFillResult, AllocationRow
from receipt.schemas.po import PurchaseOrder
from receipt.utils import safe_divide
from receipt.utils.numbers import coerce_id, parse_amount, parse_decimal, round2
from receipt.utils.logging import setup_logging, log_validation_failure
from receipt.config import get_config


logger = setup_logging(__name__)
config = get_config()

NO_VALID_ROWS = "No valid row for automatic filling"
NO_EMPTY_ROWS = "No empty row to fill"
NOTHING_TO_FILL = "Nothing to fill: the remaining total is 0"
NO_COMPLETE_ROW = "Add a row with cost center and chart of accounts selected"
SINGLE_ROW_REQUIRED = "To fill 100%, keep a single valid row"


def _as_rows(rows: Optional[Iterable[Any]]) -> List[AllocationRow]:
    result = []
    for row in rows or []:
        if isinstance(row, AllocationRow):
            result.append(row)
            continue
        try:
            result.append(AllocationRow.model_validate(row or {}))
        except ValidationError as e:
            # Keep positions stable: a broken row still occupies its slot.
            logger.warning(f"Malformed allocation row replaced by an empty one: {e.error_count()} error(s)")
            result.append(AllocationRow())
    return result


def _failure(rows: List[AllocationRow], message: str) -> AllocationFillResult:
    log_validation_failure(logger, "allocation", message, {"rows": len(rows)})
    return AllocationFillResult(ok=False, message=message, rows=rows)


def _with_share(row: AllocationRow, portion: float, base_total: float) -> AllocationRow:
    percentage = round2(safe_divide(portion, base_total) * 100)
    return row.model_copy(update={
        "amount": f"{portion:.2f}",
        "percentage": f"{percentage:.2f}",
    })


def base_total_for_allocation(
    receipt_type: str,
    manual_total: Any = None,
    purchase_order: Any = None,
) -> float:
    """
    Total the allocation rows have to add up to.

    Standalone receipts use the invoice total typed by the user, receipts
    against an order use the order total. Unusable values count as 0.
    """
    if receipt_type == config.MANUAL_RECEIPT_TYPE:
        return parse_amount(manual_total or "0")

    if purchase_order is None:
        return 0.0
    if not isinstance(purchase_order, PurchaseOrder):
        try:
            purchase_order = PurchaseOrder.model_validate(purchase_order)
        except ValidationError:
            return 0.0
    return purchase_order.total_value


def allocations_sum(rows: Sequence[Any]) -> float:
    """Sum of the row amounts; unusable amounts count as 0."""
    return sum((parse_amount(row.amount) for row in _as_rows(rows)), 0.0)


def allocations_sum_ok(rows: Sequence[Any], base_total: float) -> bool:
    """Check that the rows reconcile to the total, to the cent."""
    return round2(allocations_sum(rows)) == round2(base_total)


def allocations_valid(rows: Sequence[Any]) -> bool:
    """At least one row, and every row has a chart of accounts."""
    rows = _as_rows(rows)
    if not rows:
        return False
    return all(row.chart_of_accounts_id for row in rows)


def rows_with_invalid_targets(
    rows: Sequence[Any],
    valid_cost_center_ids: Set[Any],
    valid_chart_account_ids: Set[Any],
) -> List[int]:
    """Positions of rows pointing at a node that is not a valid target."""
    invalid = []
    for index, row in enumerate(_as_rows(rows)):
        if row.cost_center_id and coerce_id(row.cost_center_id) not in valid_cost_center_ids:
            invalid.append(index)
        elif row.chart_of_accounts_id and coerce_id(row.chart_of_accounts_id) not in valid_chart_account_ids:
            invalid.append(index)
    return invalid


def fill_missing_allocation_values(
    rows: Sequence[Any],
    base_total: float,
    require_cost_center: bool = None,
) -> AllocationFillResult:
    """
    Distribute what is left of the total over the rows without an amount.

    Rows with a target but no positive amount share the remainder, weighted
    by the percentage already typed on them (1 when there is none). Each
    share is rounded to cents and the last empty row takes whatever is left,
    so the batch adds up to the remainder exactly.

    Args:
        rows: allocation rows, models or plain records
        base_total: total the rows have to reconcile to
        require_cost_center: also require a cost center for a row to count

    Returns:
        AllocationFillResult; on failure `rows` is the unchanged input
    """
    if require_cost_center is None:
        require_cost_center = config.ALLOCATION_REQUIRE_COST_CENTER

    rows = _as_rows(rows)
    valid_rows = [
        (index, row) for index, row in enumerate(rows)
        if row.has_target(require_cost_center)
    ]
    if not valid_rows:
        return _failure(rows, NO_VALID_ROWS)

    filled_amounts = []
    missing = []
    for index, row in valid_rows:
        amount = parse_decimal(row.amount)
        if math.isfinite(amount) and amount > 0:
            filled_amounts.append(amount)
        else:
            missing.append((index, row))

    if not missing:
        return _failure(rows, NO_EMPTY_ROWS)

    remaining = max(0.0, base_total - sum(filled_amounts))
    if remaining <= 0:
        return _failure(rows, NOTHING_TO_FILL)

    weights = []
    for _, row in missing:
        percentage = parse_decimal(row.percentage)
        weights.append(percentage if math.isfinite(percentage) and percentage > 0 else 1.0)
    weight_sum = sum(weights)
    if not (math.isfinite(weight_sum) and weight_sum > 0):
        weights = [1.0] * len(missing)
        weight_sum = float(len(missing))

    updated = list(rows)
    assigned = 0.0
    last = len(missing) - 1
    for position, ((index, row), weight) in enumerate(zip(missing, weights)):
        if position == last:
            portion = round2(remaining - assigned)
        else:
            portion = round2(remaining * weight / weight_sum)
            assigned += portion
        updated[index] = _with_share(row, portion, base_total)

    filled_indices = [index for index, _ in missing]
    logger.info(f"Filled {len(filled_indices)} allocation row(s) with {remaining:.2f}")
    return AllocationFillResult(
        ok=True,
        message=f"Values filled automatically in {len(filled_indices)} row(s)",
        rows=updated,
        filled_indices=filled_indices,
    )


def distribute_evenly(rows: Sequence[Any], base_total: float) -> AllocationFillResult:
    """
    Split the whole total evenly over the rows with both dimensions set.

    Existing amounts on those rows are overwritten; the last of them takes
    the rounding residue.
    """
    rows = _as_rows(rows)
    targets = [index for index, row in enumerate(rows) if row.has_target(require_cost_center=True)]
    if not targets:
        return _failure(rows, NO_COMPLETE_ROW)

    share = base_total / len(targets)
    updated = list(rows)
    assigned = 0.0
    for position, index in enumerate(targets):
        if position == len(targets) - 1:
            portion = round2(base_total - assigned)
        else:
            portion = round2(share)
            assigned += portion
        updated[index] = _with_share(rows[index], portion, base_total)

    return AllocationFillResult(
        ok=True,
        message=f"Total distributed over {len(targets)} row(s)",
        rows=updated,
        filled_indices=targets,
    )


def fill_single_row(rows: Sequence[Any], base_total: float) -> AllocationFillResult:
    """Give the whole total to the only complete row and clear the others."""
    rows = _as_rows(rows)
    targets = [index for index, row in enumerate(rows) if row.has_target(require_cost_center=True)]
    if not targets:
        return _failure(rows, NO_COMPLETE_ROW)
    if len(targets) > 1:
        return _failure(rows, SINGLE_ROW_REQUIRED)

    target = targets[0]
    updated = []
    for index, row in enumerate(rows):
        if index == target:
            updated.append(row.model_copy(update={"amount": f"{base_total:.2f}", "percentage": "100"}))
        else:
            updated.append(row.model_copy(update={"amount": None, "percentage": None}))

    return AllocationFillResult(
        ok=True,
        message="Total assigned to a single row",
        rows=updated,
        filled_indices=[target],
    )
