"""
Item matching
Links invoice line items to purchase-order line items using normalized
code and description comparison.
"""

import re
import unicodedata
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from receipt.schemas.invoice import InvoiceLineItem
from receipt.schemas.po import ItemMatch, PurchaseOrderItem
from receipt.utils.confidence import is_auto_linkable
from receipt.utils.logging import setup_logging
from receipt.config import get_config


logger = setup_logging(__name__)
config = get_config()

MANUAL_ITEM_MATCH_THRESHOLD = config.MANUAL_ITEM_MATCH_THRESHOLD

EXACT_CODE_SCORE = 1.0
PARTIAL_CODE_SCORE = 0.85
EXACT_DESCRIPTION_SCORE = 0.9
PARTIAL_DESCRIPTION_SCORE = 0.7

_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_CANDIDATE_FIELDS = ("id", "productCode", "product_code", "itemCode", "item_code", "code", "description")


def normalize_text(value: str) -> str:
    """Strip accents, lower-case and reduce punctuation runs to single spaces."""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = _COMBINING_MARKS.sub("", decomposed).lower()
    return _NON_ALNUM.sub(" ", stripped).strip()


def calculate_token_score(left: str, right: str) -> float:
    """
    Share of common tokens between two normalized strings.

    The intersection is divided by the larger token set, so a short string
    fully contained in a long one still scores below 1.
    """
    left_tokens = {token for token in left.split(" ") if token}
    right_tokens = {token for token in right.split(" ") if token}
    if not left_tokens or not right_tokens:
        return 0.0

    intersection = len(left_tokens & right_tokens)
    return intersection / max(len(left_tokens), len(right_tokens))


def _as_invoice_item(item: Any) -> Optional[InvoiceLineItem]:
    if item is None or isinstance(item, InvoiceLineItem):
        return item
    # Only the matched fields matter here; quantities may still be half typed.
    fields = {key: item.get(key) for key in ("code", "description")} if isinstance(item, dict) else {
        "code": getattr(item, "code", None),
        "description": getattr(item, "description", None),
    }
    try:
        return InvoiceLineItem.model_validate(fields)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed invoice item: {e.error_count()} error(s)")
        return None


def _as_po_items(po_items: Optional[Iterable[Any]]) -> List[PurchaseOrderItem]:
    candidates = []
    for po_item in po_items or []:
        if isinstance(po_item, PurchaseOrderItem):
            candidates.append(po_item)
            continue
        if isinstance(po_item, dict):
            po_item = {key: po_item.get(key) for key in _CANDIDATE_FIELDS if po_item.get(key) is not None}
        try:
            candidates.append(PurchaseOrderItem.model_validate(po_item))
        except ValidationError as e:
            logger.warning(f"Ignoring malformed purchase order item: {e.error_count()} error(s)")
    return candidates


def score_candidate(manual_code: str, manual_desc: str, po_item: PurchaseOrderItem) -> float:
    """Score one candidate against an already normalized code and description."""
    po_code = normalize_text(po_item.candidate_code)
    po_desc = normalize_text(po_item.description)
    score = 0.0

    if manual_code and po_code:
        if manual_code == po_code:
            score = EXACT_CODE_SCORE
        elif manual_code in po_code or po_code in manual_code:
            score = max(score, PARTIAL_CODE_SCORE)

    if manual_desc and po_desc:
        if manual_desc == po_desc:
            score = max(score, EXACT_DESCRIPTION_SCORE)
        elif manual_desc in po_desc or po_desc in manual_desc:
            score = max(score, PARTIAL_DESCRIPTION_SCORE)
        else:
            score = max(score, calculate_token_score(manual_desc, po_desc))

    return score


def find_best_purchase_order_match(
    manual_item: Any,
    po_items: Optional[Sequence[Any]],
    threshold: float = None,
) -> Optional[ItemMatch]:
    """
    Find the purchase-order item that best matches an invoice item.

    Args:
        manual_item: InvoiceLineItem or a plain record with code/description
        po_items: PurchaseOrderItem models or plain records
        threshold: score from which the match counts as auto-linkable

    Returns:
        The highest scoring candidate (first one wins ties), or None when
        there is no item or no candidate.
    """
    if threshold is None:
        threshold = MANUAL_ITEM_MATCH_THRESHOLD

    item = _as_invoice_item(manual_item)
    candidates = _as_po_items(po_items)
    if item is None or not candidates:
        return None

    manual_code = normalize_text(item.code or "")
    manual_desc = normalize_text(item.description or "")
    best: Optional[ItemMatch] = None

    for po_item in candidates:
        score = score_candidate(manual_code, manual_desc, po_item)
        if best is None or score > best.score:
            best = ItemMatch(id=po_item.id, score=score)

    if best is not None:
        best.auto_linkable = is_auto_linkable(best.score, threshold)
    return best


def auto_link_item(
    item: InvoiceLineItem,
    po_items: Sequence[Any],
    threshold: float = None,
) -> Tuple[InvoiceLineItem, Optional[ItemMatch]]:
    """
    Re-link an invoice item after it was created or edited.

    Items linked by hand are left alone. Unlinked items, and items whose link
    came from a previous automatic match, take the best candidate when it
    reaches the threshold.

    Returns:
        (new item, match result); the input item is not modified
    """
    if threshold is None:
        threshold = MANUAL_ITEM_MATCH_THRESHOLD

    if item.is_linked() and item.match_source != "auto":
        return item, None

    match = find_best_purchase_order_match(item, po_items, threshold)
    # A candidate without an identifier can be reported but not linked to.
    if match is None or not match.auto_linkable or match.id is None:
        return item, match

    linked = item.model_copy(update={
        "purchase_order_item_id": match.id,
        "match_source": "auto",
    })
    return linked, match


def link_items(
    items: Sequence[InvoiceLineItem],
    po_items: Sequence[Any],
    threshold: float = None,
) -> Tuple[List[InvoiceLineItem], List[Optional[ItemMatch]]]:
    """Auto-link every item of an import, keeping positions."""
    candidates = _as_po_items(po_items)
    linked_items = []
    matches = []
    for item in items:
        linked, match = auto_link_item(item, candidates, threshold)
        linked_items.append(linked)
        matches.append(match)

    logger.debug(
        f"Linked {sum(1 for m in matches if m is not None and m.auto_linkable)}"
        f"/{len(items)} items against {len(candidates)} candidates"
    )
    return linked_items, matches
