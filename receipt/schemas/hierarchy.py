"""
Cost center and chart-of-accounts hierarchy models.

Both dimensions arrive as flat lists of parent-referencing records whose
field names differ (idCostCenter / idChartOfAccounts / id, name /
accountName). They are mapped once onto HierarchyNode so the tree builder
only ever sees one shape.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def _first_present(record: Any, *names: str) -> Any:
    # Only None counts as absent: 0 and "" are kept.
    for name in names:
        value = _field(record, name)
        if value is not None:
            return value
    return None


class HierarchyNode(BaseModel):
    """One cost center or chart-of-accounts entry in canonical form."""
    id: Any = None
    parent_id: Any = None
    name: str = ""
    is_payable: bool = False
    record: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_cost_center(cls, record: Any) -> "HierarchyNode":
        """Normalize an external cost center record."""
        if isinstance(record, HierarchyNode):
            return record
        name = _field(record, "name")
        return cls(
            id=_first_present(record, "idCostCenter", "id"),
            parent_id=_field(record, "parentId"),
            name=str(name) if name else "",
            record=dict(record) if isinstance(record, dict) else {},
        )

    @classmethod
    def from_chart_account(cls, record: Any) -> "HierarchyNode":
        """Normalize an external chart-of-accounts record."""
        if isinstance(record, HierarchyNode):
            return record
        name = _first_present(record, "accountName", "name")
        return cls(
            id=_first_present(record, "idChartOfAccounts", "id"),
            parent_id=_field(record, "parentId"),
            name=str(name) if name else "",
            is_payable=_field(record, "isPayable") is True,
            record=dict(record) if isinstance(record, dict) else {},
        )


class TreeChild(BaseModel):
    """A level-2 node with its level-3 nodes."""
    node: HierarchyNode
    grandchildren: List[HierarchyNode] = Field(default_factory=list)
    selectable: bool = False


class TreeGroup(BaseModel):
    """A level-1 node with its children."""
    parent: HierarchyNode
    children: List[TreeChild] = Field(default_factory=list)


class InitialExpand(BaseModel):
    """Identifiers to expand when a tree is first shown."""
    lv1: List[Any] = Field(default_factory=list)
    lv2: List[Any] = Field(default_factory=list)
