"""
Receipt Reconciliation Core
"""

__version__ = "1.0.0"
__description__ = "Item matching and allocation reconciliation for purchase receipts"

from receipt.main import process_receipt
from receipt.state import ReceiptState
from receipt.schemas.output import ReceiptSummary

__all__ = [
    "process_receipt",
    "ReceiptState",
    "ReceiptSummary",
]
