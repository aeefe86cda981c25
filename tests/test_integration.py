"""
Integration tests for the full receipt reconciliation workflow.
"""

import json
from unittest.mock import patch

import pytest

from receipt.state import ReceiptState
from receipt.workflow import item_linking_step, allocation_fill_step
from receipt.main import build_state, main, process_receipt


@pytest.fixture
def sample_receipt():
    """Create a receipt document against a purchase order."""
    return {
        "receiptId": "REC-TEST-001",
        "receiptType": "purchase_order",
        "purchaseOrder": {
            "id": 7,
            "orderNumber": "PO-2026-007",
            "totalValue": 100.0,
            "items": [
                {"id": 11, "productCode": "PAR-M6", "description": "Parafuso sextavado M6", "quantity": 10},
                {"id": 12, "itemCode": "CAB-HDMI", "description": "Cabo HDMI 2.0 preto", "quantity": 2},
            ],
        },
        "manualItems": [
            {"code": "PAR-M6", "description": "Parafuso M6", "quantity": 10, "unitPrice": 5},
            {"description": "Cabo HDMI 2.0 preto", "quantity": 2, "unitPrice": 25},
            {"description": "Caneta azul", "quantity": 1, "unitPrice": 0},
        ],
        "costCenters": [
            {"idCostCenter": 1, "parentId": None, "name": "Administração"},
            {"idCostCenter": 2, "parentId": 1, "name": "Financeiro"},
            {"idCostCenter": 3, "parentId": 2, "name": "Contas a Pagar"},
            {"idCostCenter": 7, "parentId": None, "name": "Operações"},
            {"idCostCenter": 8, "parentId": 7, "name": "Campo"},
        ],
        "chartAccounts": [
            {"idChartOfAccounts": 1, "parentId": None, "accountName": "Despesas"},
            {"idChartOfAccounts": 2, "parentId": 1, "accountName": "Serviços", "isPayable": True},
            {"idChartOfAccounts": 3, "parentId": 1, "accountName": "Materiais"},
            {"idChartOfAccounts": 4, "parentId": 3, "accountName": "Escritório", "isPayable": True},
        ],
        "allocations": [
            {"costCenterId": 3, "chartOfAccountsId": 2, "amount": "", "percentage": ""},
            {"costCenterId": 8, "chartOfAccountsId": 4, "amount": "", "percentage": ""},
        ],
        "paymentMethodCode": "pix",
        "invoiceDueDate": "2026-11-10",
    }


@pytest.mark.asyncio
async def test_full_workflow(sample_receipt):
    """Test linking and allocation fill over a whole receipt."""
    output = await process_receipt(sample_receipt)

    assert output.receipt_id == "REC-TEST-001"
    assert output.unlinked_items == [2]
    assert [item.purchase_order_item_id for item in output.items] == [11, 12, None]
    assert output.items[0].level == "EXACT_CODE"
    assert output.items[1].level == "EXACT_DESCRIPTION"
    assert output.items[2].explanation.endswith("requires manual linking")

    assert output.allocation.base_total == 100.0
    assert output.allocation.allocations_sum == pytest.approx(100.0)
    assert output.allocation.sum_ok is True
    assert output.allocation.rows_valid is True
    assert output.allocation.invalid_target_rows == []
    assert output.fiscal_valid is True

    assert "[ItemLinking] 1 item(s) require manual linking" in output.messages
    assert "[AllocationFill] Values filled automatically in 2 row(s)" in output.messages


@pytest.mark.asyncio
async def test_workflow_on_reconciled_receipt(sample_receipt):
    """Test rows that already add up are left as they are."""
    sample_receipt["allocations"][0]["amount"] = "60.00"
    sample_receipt["allocations"][1]["amount"] = "40,00"

    state = build_state(sample_receipt)
    state = await allocation_fill_step(state)

    assert [row.amount for row in state.allocations] == ["60.00", "40,00"]
    assert state.allocations_sum_ok
    assert state.messages == []


@pytest.mark.asyncio
async def test_workflow_reports_invalid_targets(sample_receipt):
    """Test rows pointing at grouping nodes are reported."""
    sample_receipt["allocations"][1]["costCenterId"] = 2
    sample_receipt["allocations"][1]["chartOfAccountsId"] = 3

    output = await process_receipt(sample_receipt)

    assert output.allocation.invalid_target_rows == [1]
    assert output.allocation.sum_ok is True


@pytest.mark.asyncio
async def test_standalone_receipt_uses_typed_total(sample_receipt):
    """Test standalone receipts reconcile to the typed total."""
    sample_receipt["receiptType"] = "avulso"
    sample_receipt["manualTotal"] = "250,50"

    output = await process_receipt(sample_receipt)

    assert output.allocation.base_total == 250.5
    assert output.allocation.sum_ok is True


@pytest.mark.asyncio
async def test_failed_fill_leaves_rows(sample_receipt):
    """Test a failed fill only adds a warning."""
    sample_receipt["allocations"] = [{"costCenterId": 3, "amount": "", "percentage": ""}]

    state = await allocation_fill_step(build_state(sample_receipt))

    assert state.allocations[0].amount is None
    assert state.messages[-1].level == "warning"
    assert state.messages[-1].message == "No valid row for automatic filling"


@pytest.mark.asyncio
async def test_no_allocation_rows(sample_receipt):
    """Test an empty apportionment asks for a row."""
    sample_receipt["allocations"] = []

    output = await process_receipt(sample_receipt)

    assert output.allocation.rows_valid is False
    assert output.allocation.sum_ok is False
    assert "[AllocationFill] Add at least one allocation row" in output.messages


@pytest.mark.asyncio
async def test_manual_link_is_kept(sample_receipt):
    """Test items linked by hand keep their link."""
    sample_receipt["manualItems"][0]["purchaseOrderItemId"] = 12
    sample_receipt["manualItems"][0]["matchSource"] = "manual"

    state = await item_linking_step(build_state(sample_receipt))

    assert state.manual_items[0].purchase_order_item_id == 12
    assert state.manual_items[0].match_source == "manual"
    assert state.item_links[0].score is None


@pytest.mark.asyncio
async def test_order_without_items(sample_receipt):
    """Test every item stays unlinked when the order has no items."""
    sample_receipt["purchaseOrder"]["items"] = []

    state = await item_linking_step(build_state(sample_receipt))

    assert all(not item.is_linked() for item in state.manual_items)
    assert len(state.item_links) == 3
    assert state.messages[-1].level == "warning"


@pytest.mark.asyncio
async def test_receipt_without_items():
    """Test a receipt without items."""
    state = ReceiptState(receipt_id="REC-EMPTY")
    state = await item_linking_step(state)

    assert state.item_links == []
    assert state.get_messages_text() == "[ItemLinking] info: No items to link"


@pytest.mark.asyncio
async def test_linking_error_is_recorded(sample_receipt):
    """Test unexpected errors become error messages."""
    with patch("receipt.workflow.link_items") as mock_link:
        mock_link.side_effect = RuntimeError("boom")
        state = await item_linking_step(build_state(sample_receipt))

    assert state.messages[-1].level == "error"
    assert "boom" in state.messages[-1].message
    assert state.item_links == []


def test_build_state_generates_an_id(sample_receipt):
    """Test a receipt id is generated when missing."""
    del sample_receipt["receiptId"]
    state = build_state(sample_receipt)
    assert state.receipt_id.startswith("REC-")
    assert "receiptId" not in sample_receipt


def test_cli_prints_summary(sample_receipt, tmp_path, capsys):
    """Test the command line entry point."""
    receipt_file = tmp_path / "receipt.json"
    receipt_file.write_text(json.dumps(sample_receipt), encoding="utf-8")

    assert main([str(receipt_file)]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["receipt_id"] == "REC-TEST-001"
    assert output["unlinked_items"] == [2]
    assert output["allocation"]["sum_ok"] is True


def test_cli_errors(tmp_path, capsys):
    """Test usage and load errors give non-zero exit codes."""
    assert main([]) == 2

    assert main([str(tmp_path / "missing.json")]) == 1

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert main([str(broken)]) == 1
    assert "Error" in capsys.readouterr().err


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
