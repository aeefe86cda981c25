"""
Installment plans for the receipt payment.
"""

import math
from datetime import date, timedelta
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from receipt.schemas.allocation import Installment, InstallmentPlanResult
from receipt.utils.numbers import parse_amount, round2
from receipt.utils.logging import setup_logging, log_validation_failure


logger = setup_logging(__name__)

MAX_INSTALLMENTS = 360

MISSING_FIRST_DUE_DATE = "Provide the first due date"
TOO_MANY_INSTALLMENTS = f"At most {MAX_INSTALLMENTS} installments are allowed"
DUE_DATE_OUT_OF_RANGE = "Installment due dates fall outside the supported calendar"


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD string; anything else gives None."""
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def add_months(start: date, months: int) -> date:
    """
    Move a date forward by whole months.

    Days past the end of the target month roll over into the next one
    (Jan 31 + 1 month is Mar 3 in a common year), like Date.setMonth.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=start.day - 1)


def generate_installments(
    total: Any,
    count: int,
    first_due_date: Any,
    method: Optional[str] = None,
) -> InstallmentPlanResult:
    """
    Split a total into monthly installments.

    Every installment but the last is the total divided by the count,
    truncated to cents; the last one takes the rest. An unusable total
    counts as 0.
    """
    due = parse_iso_date(first_due_date)
    if due is None:
        log_validation_failure(logger, "installments", MISSING_FIRST_DUE_DATE)
        return InstallmentPlanResult(ok=False, message=MISSING_FIRST_DUE_DATE)

    try:
        n = max(1, int(count or 1))
    except (TypeError, ValueError, OverflowError):
        n = 1
    if n > MAX_INSTALLMENTS:
        log_validation_failure(logger, "installments", TOO_MANY_INSTALLMENTS, {"count": n})
        return InstallmentPlanResult(ok=False, message=TOO_MANY_INSTALLMENTS)

    total = parse_amount(total)
    per = math.floor(total * 100 / n) / 100
    installments = []
    for i in range(n):
        amount = round2(total - per * (n - 1)) if i == n - 1 else per
        try:
            due_date = add_months(due, i)
        except (ValueError, OverflowError):
            log_validation_failure(logger, "installments", DUE_DATE_OUT_OF_RANGE, {"first_due_date": due.isoformat()})
            return InstallmentPlanResult(ok=False, message=DUE_DATE_OUT_OF_RANGE)
        installments.append(Installment(
            due_date=due_date.isoformat(),
            amount=f"{amount:.2f}",
            method=method or None,
        ))

    logger.info(f"Generated {n} installment(s) totalling {total:.2f}")
    return InstallmentPlanResult(
        ok=True,
        message=f"{n} installment(s) created totalling {total:.2f}",
        installments=installments,
    )


def _as_installments(installments: Optional[Sequence[Any]]) -> List[Installment]:
    result = []
    for installment in installments or []:
        if isinstance(installment, Installment):
            result.append(installment)
            continue
        try:
            result.append(Installment.model_validate(installment or {}))
        except ValidationError as e:
            logger.warning(f"Malformed installment replaced by an empty one: {e.error_count()} error(s)")
            result.append(Installment())
    return result


def is_fiscal_valid(
    installments: Optional[Sequence[Any]],
    base_total: float,
    payment_method_code: Optional[str] = None,
    invoice_due_date: Optional[str] = None,
    has_installments: bool = False,
) -> bool:
    """
    Check the payment terms of a receipt.

    A single payment needs a method and a due date. An installment plan must
    reconcile to the total to the cent, have due dates in order, and every
    installment needs a due date, a positive amount and a method (its own
    or the default one).
    """
    if not has_installments:
        return bool(payment_method_code) and bool(invoice_due_date)

    rows = _as_installments(installments)
    if not rows:
        return False

    total = sum((parse_amount(row.amount) for row in rows), 0.0)

    due_dates = [parse_iso_date(row.due_date) for row in rows]
    in_order = all(
        previous is not None and current is not None and current >= previous
        for previous, current in zip(due_dates, due_dates[1:])
    )

    all_filled = all(
        row.due_date and parse_amount(row.amount) > 0 and (row.method or payment_method_code)
        for row in rows
    )

    return round2(total) == round2(base_total) and in_order and bool(all_filled)
