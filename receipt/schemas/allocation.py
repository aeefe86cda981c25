"""
Allocation (rateio) and installment schemas.
Amounts and percentages are kept as the strings typed in the form.
"""

from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from receipt.utils import to_text


def _optional_text(value):
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return to_text(value) or None


class AllocationRow(BaseModel):
    """One apportionment line: a target and its share of the total."""
    model_config = ConfigDict(populate_by_name=True)

    cost_center_id: Optional[Union[int, str]] = Field(default=None, alias="costCenterId")
    chart_of_accounts_id: Optional[Union[int, str]] = Field(default=None, alias="chartOfAccountsId")
    amount: Optional[str] = None
    percentage: Optional[str] = None

    @field_validator("amount", "percentage", mode="before")
    @classmethod
    def _stringify(cls, value):
        return _optional_text(value)

    def has_target(self, require_cost_center: bool = False) -> bool:
        """Check whether the row points at an allocation target."""
        if require_cost_center and not self.cost_center_id:
            return False
        return bool(self.chart_of_accounts_id)


class AllocationFillResult(BaseModel):
    """Outcome of an automatic allocation fill."""
    ok: bool
    message: str
    rows: List[AllocationRow] = Field(default_factory=list)
    filled_indices: List[int] = Field(default_factory=list)


class Installment(BaseModel):
    """A single payment installment."""
    model_config = ConfigDict(populate_by_name=True)

    due_date: Optional[str] = Field(default=None, alias="dueDate")
    amount: Optional[str] = None
    method: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _stringify(cls, value):
        return _optional_text(value)


class InstallmentPlanResult(BaseModel):
    """Outcome of installment generation."""
    ok: bool
    message: str
    installments: List[Installment] = Field(default_factory=list)
