"""
Hierarchy data structures for BOM dimensions.

A Hierarchy owns every HierarchyNode of one dimension in ``nodes`` (id -> node).
Nodes never reference each other directly: ``children`` holds child ids that
are resolved through the owning hierarchy.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Iterator, Set

MASTER_ROOT_ID = "MASTER_ROOT"
EMPTY_ROOT_ID = "ROOT"
ROOT_SENTINELS = frozenset({MASTER_ROOT_ID, EMPTY_ROOT_ID})
DEFAULT_ROOT_LABEL = "All Items"


@dataclass
class HierarchyConfig:
    """
    How to read one dimension table.

    Attributes:
        name: Dimension name (e.g. 'le', 'cost_element')
        id_field: Column holding the join key into the fact table
        label_field: Optional description column used for leaf labels
        path_field: Column holding the path string; None for flat dimensions
        separator: Path separator
        display_name: Human-readable dimension name
        root_label: Overrides the generated root label
    """
    name: str
    id_field: str
    label_field: Optional[str] = None
    path_field: Optional[str] = "PATH"
    separator: str = "//"
    display_name: Optional[str] = None
    root_label: Optional[str] = None

    @property
    def title(self) -> str:
        return self.display_name or self.name.replace("_", " ").title()

    @property
    def flat_root_id(self) -> str:
        return f"{self.name.upper()}_ROOT"


@dataclass
class HierarchyNode:
    """
    One node of a dimension hierarchy.

    Attributes:
        id: Unique id within its hierarchy
        label: Display label
        level: Depth, root = 0
        dimension: Name of the owning dimension
        children: Ordered child ids
        is_leaf: True when the node carries a fact join key and has no children
        is_root: True for the hierarchy's designated root
        fact_id: Join key into fact records (single value or tuple)
        descendant_fact_ids: Fact keys reachable beneath the node
        expanded: Mirror of the last applied expansion state
        data: Copy of the source dimension record for leaves
    """
    id: str
    label: str
    level: int
    dimension: str = ""
    children: List[str] = field(default_factory=list)
    is_leaf: bool = False
    is_root: bool = False
    fact_id: Any = None
    descendant_fact_ids: Set[Any] = field(default_factory=set)
    expanded: bool = False
    data: Optional[Dict[str, Any]] = None

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def fact_ids(self) -> Set[Any]:
        """Return the node's own fact key(s) as a set."""
        if self.fact_id is None:
            return set()
        if isinstance(self.fact_id, (list, tuple, set, frozenset)):
            return {v for v in self.fact_id if v is not None}
        return {self.fact_id}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "level": self.level,
            "dimension": self.dimension,
            "children": list(self.children),
            "is_leaf": self.is_leaf,
            "fact_id": self.fact_id,
            "expanded": self.expanded,
        }


@dataclass
class Hierarchy:
    """
    A dimension hierarchy: roots, the owning node map and the source rows.

    Attributes:
        dimension: Dimension name
        roots: Root node ids (a single MASTER_ROOT when several top segments exist)
        nodes: Map id -> HierarchyNode
        flat_data: Source dimension records
    """
    dimension: str
    roots: List[str] = field(default_factory=list)
    nodes: Dict[str, HierarchyNode] = field(default_factory=dict)
    flat_data: List[Dict[str, Any]] = field(default_factory=list)
    _parents: Dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def nodes_map(self) -> Dict[str, HierarchyNode]:
        return self.nodes

    @property
    def root_id(self) -> str:
        """Designated root id."""
        return self.roots[0] if self.roots else EMPTY_ROOT_ID

    @property
    def root(self) -> Optional[HierarchyNode]:
        return self.nodes.get(self.root_id)

    def get_node(self, node_id: str) -> Optional[HierarchyNode]:
        return self.nodes.get(node_id)

    def children_of(self, node_id: str) -> List[HierarchyNode]:
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return [self.nodes[c] for c in node.children if c in self.nodes]

    def add_child(self, parent: HierarchyNode, child: HierarchyNode):
        """Register ``child`` under ``parent``. The parent stops being a leaf."""
        self.nodes[child.id] = child
        parent.children.append(child.id)
        parent.is_leaf = False
        self._parents[child.id] = parent.id

    def parent_of(self, node_id: str) -> Optional[HierarchyNode]:
        parent_id = self._parents.get(node_id)
        return self.nodes.get(parent_id) if parent_id else None

    def ancestors(self, node_id: str) -> List[HierarchyNode]:
        """Ancestors from the root down to the direct parent."""
        chain = []
        parent = self.parent_of(node_id)
        while parent is not None:
            chain.append(parent)
            parent = self.parent_of(parent.id)
        return list(reversed(chain))

    def path_of(self, node_id: str) -> List[str]:
        return [n.id for n in self.ancestors(node_id)] + [node_id]

    def walk(self) -> Iterator[HierarchyNode]:
        """Depth-first, pre-order traversal in child order."""
        stack = [r for r in reversed(self.roots) if r in self.nodes]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(c for c in reversed(node.children) if c in self.nodes)

    def leaf_nodes(self) -> List[HierarchyNode]:
        return [n for n in self.walk() if n.is_leaf]

    def flatten(self, expanded: Optional[Set[str]] = None) -> List[Dict[str, Any]]:
        """
        Flatten the tree into renderer rows.

        Args:
            expanded: Ids of expanded nodes. When None, the nodes' own
                ``expanded`` flags are used.

        Returns:
            Rows with id, label, level, path, is_leaf, has_children, expanded
        """
        def is_open(node: HierarchyNode) -> bool:
            return node.id in expanded if expanded is not None else node.expanded

        rows = []

        def visit(node_id: str, path: List[str]):
            node = self.nodes.get(node_id)
            if node is None:
                return
            current = path + [node.id]
            rows.append({
                "id": node.id,
                "label": node.label,
                "level": node.level,
                "path": current,
                "is_leaf": node.is_leaf,
                "has_children": node.has_children,
                "expanded": is_open(node),
                "fact_id": node.fact_id,
            })
            if node.has_children and is_open(node):
                for child_id in node.children:
                    visit(child_id, current)

        for root_id in self.roots:
            visit(root_id, [])
        return rows

    def stats(self) -> Dict[str, int]:
        levels = [n.level for n in self.nodes.values()]
        return {
            "nodes": len(self.nodes),
            "leaves": sum(1 for n in self.nodes.values() if n.is_leaf),
            "depth": max(levels) if levels else 0,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimension": self.dimension,
            "roots": list(self.roots),
            "nodes": {k: v.to_dict() for k, v in self.nodes.items()},
        }
