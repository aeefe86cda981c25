"""
Allocation tree builder
Groups flat cost center and chart-of-accounts lists into the 3-level trees
(parent, child, grandchild) used to pick allocation targets.
"""

import unicodedata
from typing import Any, Callable, Dict, List, Set

from receipt.schemas.hierarchy import HierarchyNode, InitialExpand, TreeChild, TreeGroup
from receipt.utils.numbers import coerce_id
from receipt.utils.logging import setup_logging


logger = setup_logging(__name__)


def name_sort_key(node: HierarchyNode):
    """
    Locale-style ordering key for node names.

    Accents and case only break ties, and lower case sorts before upper case
    on a full tie. A missing name sorts as the empty string.
    """
    name = node.name or ""
    base = "".join(
        char for char in unicodedata.normalize("NFD", name)
        if not unicodedata.combining(char)
    )
    return (base.casefold(), name.casefold(), name.swapcase())


def _normalize_records(records: Any, normalize: Callable[[Any], HierarchyNode]) -> List[HierarchyNode]:
    if not isinstance(records, (list, tuple)):
        if records is not None:
            logger.warning(f"Expected a list of hierarchy records, got {type(records).__name__}")
        return []
    return [normalize(record) for record in records if record is not None]


def _children_by_parent(nodes: List[HierarchyNode]) -> Dict[Any, List[HierarchyNode]]:
    children_map: Dict[Any, List[HierarchyNode]] = {}
    for node in nodes:
        if node.parent_id is None:
            continue
        parent_key = coerce_id(node.parent_id)
        if parent_key is None:
            continue
        children_map.setdefault(parent_key, []).append(node)
    return children_map


def _sorted_children(children_map: Dict[Any, List[HierarchyNode]], node: HierarchyNode) -> List[HierarchyNode]:
    key = coerce_id(node.id)
    if key is None:
        return []
    return sorted(children_map.get(key, []), key=name_sort_key)


def build_cost_center_tree_data(records: Any) -> List[TreeGroup]:
    """
    Build the cost center tree.

    A child is selectable when it has no grandchildren; otherwise the
    selection has to go down to a grandchild.
    """
    nodes = _normalize_records(records, HierarchyNode.from_cost_center)
    parents = [node for node in nodes if node.is_root]
    children_map = _children_by_parent(nodes)

    groups = []
    for parent in parents:
        children = []
        for child in _sorted_children(children_map, parent):
            grandchildren = _sorted_children(children_map, child)
            children.append(TreeChild(
                node=child,
                grandchildren=grandchildren,
                selectable=len(grandchildren) == 0,
            ))
        groups.append(TreeGroup(parent=parent, children=children))

    return sorted(groups, key=lambda group: name_sort_key(group.parent))


def build_chart_account_tree_data(records: Any) -> List[TreeGroup]:
    """
    Build the chart-of-accounts tree.

    Only payable accounts can receive an allocation: grandchildren are
    limited to payable ones, a child is selectable only when it is payable
    and has no payable grandchildren, and children or groups left with
    nothing selectable are dropped.
    """
    nodes = _normalize_records(records, HierarchyNode.from_chart_account)
    parents = [node for node in nodes if node.is_root]
    children_map = _children_by_parent(nodes)

    groups = []
    for parent in parents:
        children = []
        for child in _sorted_children(children_map, parent):
            grandchildren = [
                grandchild for grandchild in _sorted_children(children_map, child)
                if grandchild.is_payable
            ]
            selectable = child.is_payable and len(grandchildren) == 0
            if not selectable and not grandchildren:
                continue
            children.append(TreeChild(
                node=child,
                grandchildren=grandchildren,
                selectable=selectable,
            ))
        if children:
            groups.append(TreeGroup(parent=parent, children=children))

    return sorted(groups, key=lambda group: name_sort_key(group.parent))


def compute_initial_expand(tree: List[TreeGroup]) -> InitialExpand:
    """
    Identifiers of every level-1 and level-2 node, to open the whole tree.

    Identifiers that coerce to 0 or to nothing are left out.
    """
    lv1 = [coerce_id(group.parent.id) for group in tree]
    lv2 = [coerce_id(child.node.id) for group in tree for child in group.children]
    return InitialExpand(
        lv1=[node_id for node_id in lv1 if node_id],
        lv2=[node_id for node_id in lv2 if node_id],
    )


def compute_initial_cc_expand(tree: List[TreeGroup]) -> InitialExpand:
    """Initial expand sets for the cost center tree."""
    return compute_initial_expand(tree)


def selectable_ids(tree: List[TreeGroup]) -> Set[Any]:
    """Identifiers that may be used as an allocation target."""
    ids = set()
    for group in tree:
        for child in group.children:
            if child.selectable:
                ids.add(coerce_id(child.node.id))
            for grandchild in child.grandchildren:
                ids.add(coerce_id(grandchild.id))
    return {node_id for node_id in ids if node_id}


def valid_cost_center_ids(records: Any) -> Set[Any]:
    """Cost center identifiers an allocation row may reference."""
    return selectable_ids(build_cost_center_tree_data(records))


def valid_chart_account_ids(records: Any) -> Set[Any]:
    """Chart-of-accounts identifiers an allocation row may reference."""
    return selectable_ids(build_chart_account_tree_data(records))
